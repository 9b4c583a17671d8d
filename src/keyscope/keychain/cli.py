# src/keyscope/keychain/cli.py

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text
import pyfiglet

from keyscope.common import hexcodec
from keyscope.common.exporter import EXPORT_FORMATS, RecordExporter, group_records
from keyscope.common.hexcodec import HexDecodeError
from keyscope.common.models import CredentialRecord, RecordClass
from keyscope.keychain.config import Preferences
from keyscope.keychain.editor import CommitError, EditMode, PayloadEditor
from keyscope.keychain.gateway import FileStore, KeyscopeStoreError
from keyscope.keychain.session import KeychainSession

logger = logging.getLogger(__name__)

# Status and prompts go to stderr so exported data can be piped
console = Console(stderr=True)

EDITOR_HELP = (
    "[dim]:hex / :text switch view · :save write to keychain · :show redisplay · "
    ":quit discard · any other line replaces the content[/]"
)


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    return parser


def _parse(parser: argparse.ArgumentParser) -> argparse.Namespace:
    # Called as `keyscope <command> ...`, so the module's own args start at argv[2]
    args = parser.parse_args(sys.argv[2:])
    _setup_logging(args.verbose)
    return args


def _open_session(prefs: Preferences) -> KeychainSession:
    """Builds a session over the configured store and loads the listing."""
    if not prefs.has_group:
        console.print("[bold yellow]No access group selected.[/] Set one with [cyan]keyscope group TEAMID.*[/]")
        sys.exit(1)

    session = KeychainSession(FileStore(Path(prefs.store_path)), prefs.target_access_group)
    try:
        session.refresh()
    except KeyscopeStoreError as e:
        console.print(f"[bold red]✗ {escape(session.status_message)}[/]")
        logger.debug("Query failure", exc_info=e)
        sys.exit(1)
    return session


def _select(session: KeychainSession, position: int) -> CredentialRecord:
    try:
        return session.get(position)
    except IndexError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        sys.exit(1)


def _report_status(session: KeychainSession, ok: bool):
    mark = "[bold green]✓" if ok else "[bold red]✗"
    console.print(f"{mark} {escape(session.status_message)}[/]")


def _display_banner() -> str:
    plain_banner = pyfiglet.figlet_format("keyscope", font="slant")
    console.print(Panel(plain_banner, border_style="cyan", expand=False))
    return plain_banner


def _render_listing(session: KeychainSession):
    table = Table(
        title=f"[bold]{escape(session.access_group)}[/] · {escape(session.status_message)}",
        border_style="cyan",
        header_style="bold magenta",
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Class", no_wrap=True)
    table.add_column("Service / Server", style="cyan")
    table.add_column("Account", style="green")
    table.add_column("Data", style="dim")

    for i, record in enumerate(session.records, 1):
        color = "green" if record.record_class is RecordClass.INTERNET else "blue"
        table.add_row(
            str(i),
            f"[bold {color}]{record.record_class.label}[/]",
            escape(record.title),
            escape(record.account_label),
            escape(record.preview()),
        )
    console.print(table)


def _render_detail(record: CredentialRecord):
    core = Table.grid(padding=(0, 2))
    core.add_column(style="bold")
    core.add_column()
    core.add_row("Class", record.record_class.label)
    core.add_row(record.record_class.title_attribute, escape(record.title))
    core.add_row("Account", escape(record.account_label))
    core.add_row("Group", escape(record.access_group))
    console.print(Panel(core, title="Key fields (read-only)", border_style="cyan"))

    editor = PayloadEditor.from_record(record)
    console.print(Panel(Text(editor.buffer) if editor.buffer else "[dim](empty)[/]",
                        title=f"Data ({editor.mode.value}, {len(record.payload)} bytes)",
                        border_style="yellow"))

    attrs = Table(title="All attributes", header_style="bold blue")
    attrs.add_column("Key", style="blue")
    attrs.add_column("Value", overflow="fold")
    for key, value in sorted(record.attributes.items()):
        attrs.add_row(escape(key), escape(value))
    console.print(attrs)


# --- Commands ---

def cmd_group():
    parser = _parser("Show or set the target access group used for every keychain call.")
    parser.add_argument("value", nargs="?", help="New access group, e.g. TEAMID.* ('' clears it)")
    args = _parse(parser)

    prefs = Preferences.load()
    if args.value is None:
        shown = escape(prefs.target_access_group) or "[dim](none)[/]"
        console.print(f"Target access group: [bold cyan]{shown}[/]")
        return

    prefs.target_access_group = args.value.strip()
    prefs.save()
    console.print(f"[bold green]✓[/] Target access group set to [bold cyan]{escape(prefs.target_access_group) or '(none)'}[/]")


def cmd_list():
    parser = _parser("List every keychain item visible to the target access group.")
    parser.add_argument("-o", "--output", type=Path, help="Export the listing (.md, .csv, .json, .txt)")
    parser.add_argument("--show-data", action="store_true", help="Include payloads in the export")
    args = _parse(parser)

    banner = _display_banner()
    prefs = Preferences.load()
    session = _open_session(prefs)
    _render_listing(session)

    if not args.output:
        return

    fmt = args.output.suffix[1:].lower() if args.output.suffix else "md"
    if fmt not in EXPORT_FORMATS:
        fmt = "md"
    exporter = RecordExporter(session.access_group, banner=banner)
    try:
        exporter.export(group_records(session.records, args.show_data), args.output, fmt)
        console.print(f"\n[bold green]✓ Exported:[/] [magenta]{escape(str(args.output))}[/]")
    except OSError as e:
        console.print(f"\n[bold red]✗ Export failed:[/] {escape(str(e))}")
        sys.exit(1)


def cmd_show():
    parser = _parser("Show one keychain item with all of its attributes.")
    parser.add_argument("index", type=int, help="Position in `keyscope list`")
    args = _parse(parser)

    session = _open_session(Preferences.load())
    _render_detail(_select(session, args.index))


def cmd_add():
    parser = _parser("Add a new item to the target access group.")
    parser.add_argument("title", help="Service name (generic) or server address (internet)")
    kind = parser.add_mutually_exclusive_group()
    kind.add_argument("--generic", dest="internet", action="store_false", help="Generic password (default)")
    kind.add_argument("--internet", dest="internet", action="store_true", help="Internet password")
    parser.set_defaults(internet=False)
    parser.add_argument("-a", "--account", default="", help="Account name")
    parser.add_argument("-d", "--data", help="Secret content (prompted for when omitted)")
    parser.add_argument("--hex", action="store_true", help="Interpret the data as hex")
    args = _parse(parser)

    prefs = Preferences.load()
    session = _open_session(prefs)

    data = args.data
    if data is None:
        data = Prompt.ask("[yellow]Data[/]", password=True)
    try:
        payload = hexcodec.decode(data) if args.hex else data.encode("utf-8")
    except HexDecodeError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        sys.exit(1)

    record_class = RecordClass.INTERNET if args.internet else RecordClass.GENERIC
    try:
        status = session.add(record_class, args.title, args.account, payload)
    except KeyscopeStoreError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        sys.exit(1)
    _report_status(session, status.ok)
    if not status.ok:
        sys.exit(1)


def _edit_loop(session: KeychainSession, record: CredentialRecord) -> bool:
    """Runs an interactive editing session. Returns True once saved."""
    editor = PayloadEditor.from_record(record)
    console.print(EDITOR_HELP)

    def show():
        console.print(Panel(Text(editor.buffer) if editor.buffer else "[dim](empty)[/]",
                            title=f"{escape(record.title)} · {editor.mode.value}", border_style="yellow"))

    show()
    while True:
        line = Prompt.ask(f"[yellow]{editor.mode.value}>[/]", default="", show_default=False)

        if line in (":hex", ":text"):
            if not editor.switch_mode(EditMode(line[1:])):
                console.print("[bold yellow]Content is not valid UTF-8; switch back with :hex[/]")
            show()
        elif line == ":show":
            show()
        elif line == ":quit":
            console.print("[dim]Discarded.[/]")
            return False
        elif line == ":save":
            try:
                status = session.save(record, editor)
            except CommitError as e:
                console.print(f"[bold red]✗ {escape(str(e))}[/]")
                continue
            _report_status(session, status.ok)
            if status.ok:
                return True
        else:
            editor.buffer = line
            show()


def cmd_edit():
    parser = _parser("Edit the data of one keychain item as text or hex.")
    parser.add_argument("index", type=int, help="Position in `keyscope list`")
    args = _parse(parser)

    session = _open_session(Preferences.load())
    record = _select(session, args.index)
    try:
        _edit_loop(session, record)
    except KeyscopeStoreError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        sys.exit(1)


def cmd_delete():
    parser = _parser("Delete one keychain item.")
    parser.add_argument("index", type=int, help="Position in `keyscope list`")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    args = _parse(parser)

    session = _open_session(Preferences.load())
    record = _select(session, args.index)
    if not args.yes and not Confirm.ask(f"Delete [cyan]{escape(record.title)}[/] ({escape(record.account_label)})?"):
        return

    try:
        status = session.delete(record)
    except KeyscopeStoreError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        sys.exit(1)
    # NOT_FOUND means it was already gone; report it without failing
    _report_status(session, status.ok)


COMMANDS = {
    "group": (cmd_group, "Show or set the target access group."),
    "list": (cmd_list, "List items in the target access group."),
    "show": (cmd_show, "Show one item and all of its attributes."),
    "add": (cmd_add, "Add a generic or internet password."),
    "edit": (cmd_edit, "Edit an item's data in text or hex mode."),
    "delete": (cmd_delete, "Delete an item."),
}
