"""Concrete speech and audio backends.

Modules are imported on demand through ``khadija.audio.factory`` because
sounddevice and pyttsx3 load native libraries at import time.
"""
