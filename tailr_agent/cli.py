"""CLI - command line interface for tailr-agent."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from .agent import ChatReply, ResumeAssistant
from .config import DEFAULT_CONFIG_PATH, load_config
from .core.errors import ConfigError, JobPostingError
from .core.session import ContentType
from .domain.job_posting import extract_job_description
from .factory import create_assistant

console = Console()

CONVERSATION_ID = "cli"


def print_banner():
    banner = """
╔═══════════════════════════════════════════════════════════╗
║                        tailr-agent                        ║
║       Tailor your resume to a job, one edit at a time     ║
╠═══════════════════════════════════════════════════════════╣
║  /help  /context  /files  /stats  /reset  /quit           ║
╚═══════════════════════════════════════════════════════════╝
"""
    console.print(banner, style="cyan")


def print_help():
    help_text = """
## Available Commands

| Command | Description |
|---------|-------------|
| `/help` | Show this help message |
| `/context` | Show resume, job description and analysis versions |
| `/files` | List uploaded context files |
| `/stats` | Show tool, model and embedding cache statistics |
| `/reset` | Forget the conversation, files and documents |
| `/quit` or `/exit` | Exit |

## Example Prompts

- "How well does my resume fit this job?"
- "Find the bullet about the payment service and make it mention Kafka"
- "Rewrite my summary for a senior backend role"
- "What do my uploaded notes say about the team's on-call rotation?"
"""
    console.print(Markdown(help_text))


def print_context(assistant: ResumeAssistant, conversation_id: str):
    context = assistant.session.get_context(conversation_id)
    content = assistant.session.get_current_content(conversation_id)
    table = Table(title="Documents")
    table.add_column("Document")
    table.add_column("Version", justify="right")
    table.add_column("Characters", justify="right")
    for content_type in ContentType:
        ref = context.ref(content_type)
        table.add_row(content_type.value, str(ref.version) if ref.id else "-", str(len(content[content_type.value])))
    console.print(table)


def print_files(assistant: ResumeAssistant, conversation_id: str):
    files = assistant.files(conversation_id)
    if not files:
        console.print("No files uploaded. Start with --file PATH.", style="dim")
        return
    lines = [f"{f.id}  {f.name}  ({f.size} bytes)" for f in files]
    console.print(Panel("\n".join(lines), title="Uploaded files"))


def print_reply(reply: ChatReply, quiet: bool = False):
    if not quiet and reply.tools_used:
        names = ", ".join(t["name"] + (" (failed)" if "error" in t else "") for t in reply.tools_used)
        console.print(f"Tools: {names}", style="dim")
    if reply.error is not None:
        console.print(reply.text, style="red")
        return
    console.print(Markdown(reply.text or "(no answer)"))


async def handle_command(command: str, assistant: ResumeAssistant, conversation_id: str) -> bool:
    """Handle special commands. Returns True if should continue, False to exit."""
    cmd = command.lower().strip()

    if cmd in ["/quit", "/exit", "/q"]:
        console.print("\nGoodbye!", style="yellow")
        return False
    elif cmd == "/help":
        print_help()
    elif cmd == "/reset":
        assistant.reset(conversation_id)
        console.print("Conversation reset.", style="green")
    elif cmd == "/context":
        print_context(assistant, conversation_id)
    elif cmd == "/files":
        print_files(assistant, conversation_id)
    elif cmd == "/stats":
        console.print_json(json.dumps(assistant.stats(), default=str))
    else:
        console.print(f"Unknown command: {command}. Type /help for available commands.", style="red")
    return True


async def run_interactive(assistant: ResumeAssistant, conversation_id: str, quiet: bool = False):
    """Run interactive chat loop."""
    history_file = Path.home() / ".tailr_agent_history"
    session = PromptSession(history=FileHistory(str(history_file)))

    print_banner()

    while True:
        try:
            user_input = await session.prompt_async("\nYou: ")
        except KeyboardInterrupt:
            console.print("\n\nGoodbye!", style="yellow")
            break
        except EOFError:
            console.print("\nGoodbye!", style="yellow")
            break

        user_input = user_input.strip()
        if not user_input:
            continue

        if user_input.startswith("/"):
            if not await handle_command(user_input, assistant, conversation_id):
                break
            continue

        console.print("\nThinking...", style="dim")
        reply = await assistant.chat(conversation_id, user_input)
        console.print("\nAssistant:", style="bold green")
        print_reply(reply, quiet=quiet)


def _read_text(path: str) -> str:
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return file_path.read_text(encoding="utf-8")


def load_documents(
    assistant: ResumeAssistant,
    conversation_id: str,
    resume: Optional[str],
    job: Optional[str],
    files: List[str],
    job_url: Optional[str] = None,
):
    if resume:
        assistant.set_document(conversation_id, ContentType.RESUME, _read_text(resume))
    if job:
        assistant.set_document(conversation_id, ContentType.JOB_DESCRIPTION, _read_text(job))
    elif job_url:
        assistant.set_document(conversation_id, ContentType.JOB_DESCRIPTION, extract_job_description(job_url))
    for path in files:
        assistant.upload(conversation_id, Path(path).name, _read_text(path))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tailr-agent",
        description="tailr-agent - resume tailoring assistant",
    )
    parser.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH, help="Path to configuration file")
    parser.add_argument("--resume", "-r", help="Resume file (HTML or plain text)")
    job = parser.add_mutually_exclusive_group()
    job.add_argument("--job", "-j", help="Job description file (plain text or HTML)")
    job.add_argument(
        "--job-url", help="Job posting URL to load the description from (Greenhouse, Lever, Ashby, Jobvite)"
    )
    parser.add_argument(
        "--file", "-f", action="append", default=[], help="Additional context file to search (repeatable)"
    )
    parser.add_argument("--prompt", "-p", help="Run a single prompt and exit (non-interactive mode)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log model and tool activity")
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet mode (minimal output)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        if args.verbose:
            config.verbose = True
        assistant = create_assistant(config)
        load_documents(assistant, CONVERSATION_ID, args.resume, args.job, args.file, job_url=args.job_url)
    except (ConfigError, JobPostingError, ValueError, FileNotFoundError) as e:
        console.print(f"Error: {e}", style="red")
        return 1

    if args.prompt:
        reply = asyncio.run(assistant.chat(CONVERSATION_ID, args.prompt))
        print_reply(reply, quiet=args.quiet)
        return 0 if reply.ok else 2

    asyncio.run(run_interactive(assistant, CONVERSATION_ID, quiet=args.quiet))
    return 0


if __name__ == "__main__":
    sys.exit(main())
