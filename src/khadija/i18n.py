"""Message catalogue for the interface languages (fr, wo, ar).

Only the strings the assistant itself produces live here: error messages,
the welcome turn, the sources heading and labels used in exports.
"""

from .errors import ErrorKind

DEFAULT_LANGUAGE = "fr"

MESSAGES: dict[str, dict[str, str]] = {
    "fr": {
        "app_title": "Khadija",
        "app_subtitle": "Votre assistant pour la plateforme Senprof",
        "welcome": "Bonjour ! Je suis l'assistante Khadija. Posez votre question sur la plateforme Senprof.",
        "sources": "Source(s) :",
        "user_sender": "Utilisateur",
        "assistant_sender": "Khadija",
        "summarizing": "Résumé en cours...",
        "quiz_creating": "Création du quiz...",
        "quiz_correct": "Correct !",
        "quiz_incorrect": "Incorrect.",
        "no_voice_available": "Aucune voix disponible",
        "voice_preview": "Bonjour, je suis Khadija. C'est un plaisir de vous aider.",
        "no_favorites": "Aucun favori pour le moment.",
        "role.enseignant": "Enseignant",
        "role.eleve": "Élève",
        "role.parent": "Parent",
        "error.generic": "Désolé, une erreur est survenue. Veuillez réessayer.",
        "error.network": (
            "Il semble y avoir un problème de connexion. "
            "Veuillez vérifier votre accès à internet et réessayer."
        ),
        "error.auth_config": (
            "Il y a un problème avec la configuration de l'application. Veuillez contacter le support."
        ),
        "error.rate_limited": (
            "L'assistante reçoit trop de demandes en ce moment. "
            "Veuillez patienter un instant avant de réessayer."
        ),
        "error.model": (
            "Le modèle d'IA n'a pas pu traiter cette demande. "
            "Veuillez essayer de reformuler votre question ou réessayer plus tard."
        ),
        "error.content_blocked": (
            "La réponse a été bloquée car elle pourrait enfreindre les règles de sécurité. "
            "Veuillez modifier votre question."
        ),
        "error.media_load": "Impossible de charger l'image sélectionnée. Veuillez essayer un autre fichier.",
        "error.mic_permission": (
            "L'accès au microphone a été refusé. "
            "Veuillez l'autoriser dans les paramètres de votre navigateur."
        ),
        "error.speech_recognition": "Erreur de reconnaissance vocale. Veuillez réessayer.",
    },
    "wo": {
        "app_title": "Khadija",
        "app_subtitle": "Sa ndimal ngir jot ci ay ressources ci Senprof",
        "welcome": "Salaam aleekum ! Man la Khadija, sa ndimalu Senprof. Laajal sa laaj.",
        "sources": "Source(s):",
        "user_sender": "Jëfandikukat",
        "assistant_sender": "Khadija",
        "summarizing": "Dafa nekk ci tekki...",
        "quiz_creating": "Dafa nekk ci defar quiz...",
        "quiz_correct": "Deug na!",
        "quiz_incorrect": "Deugul.",
        "no_voice_available": "Amul benn baat",
        "role.enseignant": "Jàngalekat",
        "role.eleve": "Ndongo",
        "role.parent": "Way-jur",
        "voice_preview": "Salaam aleekum, man Khadija laa. Bég naa lool ci dimbali leen.",
        "error.generic": "Jéggalu, am na njuumte. Ngir nga jéemaat.",
        "error.network": "Problem am na ci connexion bi. Seetal sa internet te jéemaat.",
        "error.auth_config": "Problem am na ci configuration application bi. Jookool ak support bi.",
        "error.rate_limited": "Assistant bi dafa am laaj yu bari. Xaaral tuuti te jéemaat.",
        "error.model": "Modèle IA bi mënu la traiter laaj bi. Jéemaatal wala nga laajee beneen anam.",
        "error.content_blocked": "Tontu bi dañu ko bloqué ndax mën na jalgati règle yi. Soppil sa laaj.",
        "error.media_load": "Mënuñu charger nataal bi. Jéemaatal beneen.",
        "error.mic_permission": "Daño bañ accès ci micro bi. Ngir nga nangul ko ci paramètres navigateur bi.",
        "error.speech_recognition": "Njuumte ci xammu baat. Jéemaatal.",
    },
    "ar": {
        "app_title": "Khadija",
        "welcome": "أهلاً بك! أنا المساعدة Khadija. اطرح سؤالك حول منصة Senprof.",
        "sources": "المصدر (المصادر):",
        "no_voice_available": "لا توجد أصوات متاحة",
        "role.enseignant": "معلم",
        "role.eleve": "طالب",
        "role.parent": "ولي أمر",
        "error.generic": "عذراً، حدث خطأ ما. يرجى المحاولة مرة أخرى.",
        "error.network": "يبدو أن هناك مشكلة في الاتصال. يرجى التحقق من اتصالك بالإنترنت والمحاولة مرة أخرى.",
        "error.auth_config": "هناك مشكلة في تكوين التطبيق. يرجى الاتصال بالدعم.",
        "error.rate_limited": (
            "يتلقى المساعد عددًا كبيرًا جدًا من الطلبات في الوقت الحالي. يرجى الانتظار لحظة قبل المحاولة مرة أخرى."
        ),
        "error.model": (
            "لم يتمكن نموذج الذكاء الاصطناعي من معالجة هذا الطلب. "
            "يرجى محاولة إعادة صياغة سؤالك أو المحاولة مرة أخرى لاحقًا."
        ),
        "error.content_blocked": "تم حظر الرد لأنه قد ينتهك سياسات السلامة. يرجى تعديل سؤالك.",
        "error.media_load": "تعذر تحميل الصورة المحددة. يرجى تجربة ملف آخر.",
        "error.mic_permission": "تم رفض الوصول إلى الميكروفون. يرجى السماح به في إعدادات متصفحك.",
        "error.speech_recognition": "خطأ في التعرف على الكلام. يرجى المحاولة مرة أخرى.",
    },
}


def translate(key: str, lang: str = DEFAULT_LANGUAGE) -> str:
    """Look up a message, falling back to French, then to the key itself."""
    catalogue = MESSAGES.get(lang, MESSAGES[DEFAULT_LANGUAGE])
    if key in catalogue:
        return catalogue[key]
    return MESSAGES[DEFAULT_LANGUAGE].get(key, key)


def error_message(kind: ErrorKind, lang: str = DEFAULT_LANGUAGE) -> str:
    """Localized user-facing text for a classified error."""
    message = translate(f"error.{kind.value}", lang)
    if message == f"error.{kind.value}":
        return translate("error.generic", lang)
    return message
