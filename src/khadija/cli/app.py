"""Main CLI application using Typer."""
import asyncio

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..assistant import Assistant
from ..audio import ControlState, PlaybackControl, SessionState
from ..config import SCHOOL_LEVELS, UserRole
from ..errors import AssistantError, ErrorKind, MediaLoadError
from ..i18n import error_message, translate
from ..llm import ChatTurn, Sender
from ..rendering import LinkSanitizer, html_to_text
from ..streaming import StreamingAssembly
from ..suggestions import SuggestionView
from .providers import build_assistant

app = typer.Typer(
    name="khadija",
    help="Khadija, a chat assistant for the resources of the Senprof platform",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


class ConsoleControl(PlaybackControl):
    """Reports playback state changes of the last answer on the console."""

    _LABELS = {
        ControlState.BUSY: "[dim]♪ preparing audio...[/dim]",
        ControlState.PLAYING: "[dim]♪ playing (/stop to interrupt)[/dim]",
        ControlState.RESTING: "[dim]♪ stopped[/dim]",
    }

    def __init__(self):
        self.state = ControlState.RESTING

    def set_state(self, state: ControlState) -> None:
        if state != self.state:
            self.state = state
            console.print(self._LABELS[state])


class ConsoleSuggestionView(SuggestionView):
    """Numbered suggestion chips printed above the prompt."""

    def __init__(self):
        self.assistant: Assistant | None = None
        self.typed = ""
        self.shown: list[str] = []

    def input_text(self) -> str:
        return self.typed

    def is_loading(self) -> bool:
        return self.assistant is not None and self.assistant.loading

    def show_placeholders(self, count: int) -> None:
        console.print("[dim]" + "  ".join(["[ ... ]"] * count) + "[/dim]")

    def show_suggestions(self, suggestions: list[str]) -> None:
        self.shown = list(suggestions)
        for i, text in enumerate(suggestions, 1):
            console.print(f"  [cyan]{i}[/cyan] {escape(text)}")

    def clear(self) -> None:
        self.shown = []


def _print_turn(assistant: Assistant, turn: ChatTurn) -> None:
    sender = translate("user_sender" if turn.sender is Sender.USER else "assistant_sender", assistant.lang)
    if turn.is_error:
        console.print(Panel(Text(turn.content), title=sender, border_style="red"))
        return
    style = "yellow" if turn.sender is Sender.USER else "cyan"
    console.print(Panel(Text(html_to_text(turn.content).strip()), title=sender, border_style=style))
    if turn.sender is Sender.ASSISTANT:
        links = assistant.resource_links(turn.content)
        if links:
            table = Table(show_header=False, box=None)
            table.add_column("#", style="dim")
            table.add_column("Resource")
            for i, (url, title) in enumerate(links, 1):
                marker = "🔖 " if url in assistant.favorites else ""
                table.add_row(str(i), f"{marker}{escape(title)}\n[dim]{escape(url)}[/dim]")
            console.print(table)


def live_text(sanitizer: LinkSanitizer, assembly: StreamingAssembly) -> Text:
    """Partial answer as shown while streaming, already stripped of unapproved links."""
    markup = sanitizer.sanitize_html(assembly.rendered_markup)
    return Text(html_to_text(markup).strip() + " ▌")


async def _ask(assistant: Assistant, text: str) -> ChatTurn | None:
    sanitizer = LinkSanitizer(assistant.domain)
    with Live(console=console, refresh_per_second=8, transient=True) as live:
        def on_update(assembly: StreamingAssembly) -> None:
            live.update(live_text(sanitizer, assembly))

        turn = await assistant.submit(text, on_update=on_update)
    if turn is not None:
        _print_turn(assistant, turn)
    return turn


async def _wait_for_audio(assistant: Assistant) -> None:
    while assistant.audio is not None and assistant.audio.state is not SessionState.IDLE:
        await asyncio.sleep(0.1)


async def _run_quiz(assistant: Assistant, url: str) -> None:
    console.print(f"[dim]{translate('quiz_creating', assistant.lang)}[/dim]")
    try:
        attempt = await assistant.create_quiz(url)
    except AssistantError as e:
        console.print(f"[red]{error_message(e.kind, assistant.lang)}[/red]")
        return
    for index, question in enumerate(attempt.quiz.quiz):
        console.print(f"\n[bold]{index + 1}. {escape(question.question)}[/bold]")
        for opt, option in enumerate(question.options):
            console.print(f"  [cyan]{opt}[/cyan] {escape(option)}")
        raw = await asyncio.to_thread(console.input, "> ")
        try:
            choice = int(raw.strip())
        except ValueError:
            choice = -1
        if attempt.answer(index, choice):
            console.print(f"[green]{translate('quiz_correct', assistant.lang)}[/green]")
        else:
            answer = question.options[question.correct_answer_index]
            console.print(f"[red]{translate('quiz_incorrect', assistant.lang)}[/red] → {escape(answer)}")
    console.print(f"\n[bold]{attempt.score}/{len(attempt.quiz.quiz)}[/bold]")


def _pick_link(assistant: Assistant, turn: ChatTurn | None, arg: str) -> tuple[str, str] | None:
    links = assistant.resource_links(turn.content) if turn else []
    try:
        return links[int(arg or "1") - 1]
    except (ValueError, IndexError):
        console.print("[yellow]No such resource in the last answer[/yellow]")
        return None


CHAT_HELP = """[dim]Commands:
  /speak          read the last answer aloud (again to stop)
  /stop           stop audio
  /attach PATH    attach an image to the next message
  /fav [N]        bookmark resource N of the last answer
  /summary [N]    summarize resource N
  /quiz [N]       quiz on resource N
  /transcript     print the conversation as text
  /clear          clear history
  /quit           leave
A number alone sends the matching suggestion.[/dim]"""


@app.command()
def chat():
    """Interactive chat with streamed answers."""
    async def _chat():
        view = ConsoleSuggestionView()
        assistant = build_assistant(console, suggestion_view=view)
        view.assistant = assistant
        control = ConsoleControl()
        pending_suggestions = None

        try:
            await assistant.start()
            console.print(f"[bold cyan]{translate('app_title', assistant.lang)}[/bold cyan]")
            console.print(f"[dim]{translate('app_subtitle', assistant.lang)}[/dim]\n")
            for turn in assistant.history.turns:
                _print_turn(assistant, turn)
            console.print(CHAT_HELP)
            # Chips may arrive while the first prompt is already open
            pending_suggestions = asyncio.create_task(assistant.refresh_suggestions())

            last_answer = next(
                (t for t in reversed(assistant.history.turns) if t.sender is Sender.ASSISTANT), None
            )
            while True:
                try:
                    user_input = (await asyncio.to_thread(console.input, "[bold yellow]>[/bold yellow] ")).strip()
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Au revoir ![/dim]")
                    break
                view.typed = user_input

                if not user_input:
                    continue
                if user_input.isdigit() and view.shown:
                    index = int(user_input) - 1
                    if 0 <= index < len(view.shown):
                        user_input = view.shown[index]
                        view.clear()

                command, _, arg = user_input.partition(" ")
                arg = arg.strip()

                if command in ("/quit", "/exit", "/q"):
                    console.print("[dim]Au revoir ![/dim]")
                    break
                elif command == "/speak":
                    if last_answer is None:
                        continue
                    await assistant.speak(last_answer.content, control)
                elif command == "/stop":
                    assistant.stop_audio()
                elif command == "/attach":
                    try:
                        media = await assistant.attachments.load_file(arg)
                        console.print(f"[dim]Attached {arg} ({media.mime_type})[/dim]")
                    except MediaLoadError as e:
                        console.print(f"[red]{error_message(e.kind, assistant.lang)}[/red]")
                elif command == "/fav":
                    link = _pick_link(assistant, last_answer, arg)
                    if link:
                        added = await assistant.toggle_favorite(*link)
                        console.print("[green]🔖 added[/green]" if added else "[dim]🔖 removed[/dim]")
                elif command == "/summary":
                    link = _pick_link(assistant, last_answer, arg)
                    if link:
                        console.print(f"[dim]{translate('summarizing', assistant.lang)}[/dim]")
                        try:
                            result = await assistant.summarize(link[0])
                            console.print(Panel(Text(html_to_text(result.markup).strip()), border_style="cyan"))
                        except AssistantError as e:
                            console.print(f"[red]{error_message(e.kind, assistant.lang)}[/red]")
                elif command == "/quiz":
                    link = _pick_link(assistant, last_answer, arg)
                    if link:
                        await _run_quiz(assistant, link[0])
                elif command == "/transcript":
                    console.print(assistant.transcript(), markup=False)
                elif command == "/clear":
                    await assistant.clear_history()
                    last_answer = None
                    for turn in assistant.history.turns:
                        _print_turn(assistant, turn)
                    view.typed = ""
                    await assistant.refresh_suggestions()
                elif command.startswith("/"):
                    console.print(CHAT_HELP)
                else:
                    view.clear()
                    turn = await _ask(assistant, user_input)
                    if turn is not None:
                        last_answer = turn
        finally:
            if pending_suggestions is not None:
                pending_suggestions.cancel()
            await assistant.close()

    asyncio.run(_chat())


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Question about Senprof resources"),
    image: str = typer.Option(None, "--image", "-i", help="Image to attach"),
    speak: bool = typer.Option(False, "--speak", "-s", help="Read the answer aloud"),
):
    """Ask a single question."""
    async def _ask_once():
        assistant = build_assistant(console, audio=speak)
        try:
            await assistant.start()
            if image:
                try:
                    await assistant.attachments.load_file(image)
                except MediaLoadError as e:
                    console.print(f"[red]{error_message(e.kind, assistant.lang)}[/red]")
                    raise typer.Exit(code=1)
            turn = await _ask(assistant, prompt)
            if turn is None or turn.is_error:
                raise typer.Exit(code=1)
            if speak and await assistant.speak(turn.content, ConsoleControl()):
                await _wait_for_audio(assistant)
        finally:
            await assistant.close()

    asyncio.run(_ask_once())


@app.command()
def speak(text: str = typer.Argument(None, help="Text to read (default: voice preview)")):
    """Read a text aloud with the configured speech service."""
    async def _speak():
        assistant = build_assistant(console)
        try:
            await assistant.start()
            console.print(f"[dim]TTS service: {assistant.tts.service}[/dim]")
            content = text or translate("voice_preview", assistant.lang)
            if await assistant.speak(content, ConsoleControl()):
                await _wait_for_audio(assistant)
            else:
                console.print(f"[red]{error_message(ErrorKind.GENERIC, assistant.lang)}[/red]")
                raise typer.Exit(code=1)
        finally:
            await assistant.close()

    asyncio.run(_speak())


@app.command()
def voices():
    """List local voices available to the fallback speech engine."""
    async def _voices():
        assistant = build_assistant(console)
        try:
            await assistant.start()
            found = assistant.tts.refresh_voices()
            if not found:
                console.print(f"[dim]{translate('no_voice_available', assistant.lang)}[/dim]")
                return
            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("Name")
            table.add_column("Language")
            for voice in found:
                table.add_row(voice.name, voice.lang)
            console.print(table)
        finally:
            await assistant.close()

    asyncio.run(_voices())


@app.command()
def suggest():
    """Show opening questions for the current profile."""
    async def _suggest():
        view = ConsoleSuggestionView()
        assistant = build_assistant(console, suggestion_view=view, audio=False)
        view.assistant = assistant
        try:
            await assistant.start()
            await assistant.suggestions.refresh(history_length=0)
        finally:
            await assistant.close()

    asyncio.run(_suggest())


@app.command()
def summarize(url: str = typer.Argument(..., help="Resource URL")):
    """Summarize a resource in three key points."""
    async def _summarize():
        assistant = build_assistant(console, audio=False)
        try:
            await assistant.start()
            console.print(f"[dim]{translate('summarizing', assistant.lang)}[/dim]")
            try:
                result = await assistant.summarize(url)
            except AssistantError as e:
                console.print(f"[red]{error_message(e.kind, assistant.lang)}[/red]")
                raise typer.Exit(code=1)
            console.print(Panel(Text(html_to_text(result.markup).strip()), border_style="cyan"))
        finally:
            await assistant.close()

    asyncio.run(_summarize())


@app.command()
def quiz(url: str = typer.Argument(..., help="Resource URL")):
    """Take a three-question quiz about a resource."""
    async def _quiz():
        assistant = build_assistant(console, audio=False)
        try:
            await assistant.start()
            await _run_quiz(assistant, url)
        finally:
            await assistant.close()

    asyncio.run(_quiz())


@app.command()
def history():
    """Show the stored conversation."""
    async def _history():
        assistant = build_assistant(console, audio=False)
        try:
            await assistant.start()
            for turn in assistant.history.turns:
                _print_turn(assistant, turn)
        finally:
            await assistant.close()

    asyncio.run(_history())


@app.command(name="clear-history")
def clear_history(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Forget the stored conversation."""
    if not yes and not typer.confirm("Clear the conversation history?"):
        console.print("[dim]Aborted.[/dim]")
        return

    async def _clear():
        assistant = build_assistant(console, audio=False)
        try:
            await assistant.start()
            await assistant.clear_history()
            console.print("[green]History cleared.[/green]")
        finally:
            await assistant.close()

    asyncio.run(_clear())


@app.command()
def favorites(
    remove: str = typer.Option(None, "--remove", "-r", help="URL to remove from favorites"),
):
    """List bookmarked resources."""
    async def _favorites():
        assistant = build_assistant(console, audio=False)
        try:
            await assistant.start()
            if remove:
                await assistant.favorites.remove(remove)
            entries = assistant.favorites.entries()
            if not entries:
                console.print(f"[dim]{translate('no_favorites', assistant.lang)}[/dim]")
                return
            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("Title")
            table.add_column("URL", style="dim")
            for fav in entries:
                table.add_row(fav.title, fav.url)
            console.print(table)
        finally:
            await assistant.close()

    asyncio.run(_favorites())


@app.command()
def transcript(
    output: str = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout"),
):
    """Export the conversation as plain text."""
    async def _transcript():
        assistant = build_assistant(console, audio=False)
        try:
            await assistant.start()
            text = assistant.transcript()
        finally:
            await assistant.close()
        if output:
            with open(output, "w", encoding="utf-8") as f:
                f.write(text)
            console.print(f"[green]Transcript written to {output}[/green]")
        else:
            console.print(text, markup=False, highlight=False)

    asyncio.run(_transcript())


@app.command()
def settings(
    role: UserRole = typer.Option(None, "--role", help="enseignant, eleve or parent"),
    level: str = typer.Option(None, "--level", help="School level, e.g. moyen-6e"),
    lang: str = typer.Option(None, "--lang", help="Interface language: fr, wo or ar"),
    speed: float = typer.Option(None, "--speed", help="Playback speed"),
    voice: str = typer.Option(None, "--voice", help="Preferred local voice name"),
    pitch: float = typer.Option(None, "--pitch", help="Local voice pitch"),
):
    """Show or change user settings."""
    if level is not None and level not in SCHOOL_LEVELS:
        console.print(f"[red]Unknown level: {level}. Choose from: {', '.join(SCHOOL_LEVELS)}[/red]")
        raise typer.Exit(code=1)

    changes = {
        key: value
        for key, value in {
            "user_role": role,
            "user_level": level,
            "ui_lang": lang,
            "playback_speed": speed,
            "voice_name": voice,
            "pitch": pitch,
        }.items()
        if value is not None
    }

    async def _settings():
        assistant = build_assistant(console, audio=False)
        try:
            await assistant.start()
            try:
                current = await assistant.update_settings(**changes) if changes else assistant.settings
            except ValidationError as e:
                console.print(f"[red]Invalid setting: {e.errors()[0]['msg']}[/red]")
                raise typer.Exit(code=1)
            table = Table(show_header=False, box=None)
            table.add_column("Setting", style="cyan")
            table.add_column("Value")
            table.add_row("Role", current.user_role.value)
            table.add_row("Level", current.level_label)
            table.add_row("Language", current.ui_lang)
            table.add_row("Playback speed", f"{current.playback_speed:g}")
            table.add_row("Voice", current.voice_name or "-")
            table.add_row("Pitch", f"{current.pitch:g}")
            console.print(table)
        finally:
            await assistant.close()

    asyncio.run(_settings())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
