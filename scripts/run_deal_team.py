#!/usr/bin/env python3
"""
Run the deal team from the command line against a file-backed state store.

Without --file the sourcing flow runs on the prompt; with one or more --file
arguments the documents are analyzed instead (or added to the portfolio with
--portfolio). Requires OPENAI_API_KEY (read from .env at the project root).

Usage:
    python scripts/run_deal_team.py "Find a founder-led HVAC services business"
    python scripts/run_deal_team.py "Review this CIM" --file cim.pdf
    python scripts/run_deal_team.py --portfolio --file portfolio.xlsx
    python scripts/run_deal_team.py "..." --export out/
"""

import argparse
import asyncio
import base64
import mimetypes
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / '.env')

from deal_team.clients import OpenAIModelClient
from deal_team.config import config
from deal_team.export import deal_to_csv, export_filename, memo_to_markdown
from deal_team.logging import configure_logging
from deal_team.models import FileAttachment
from deal_team.pipeline import DealTeamOrchestrator, RunResult
from deal_team.store import FileKeyValueStore, StateStore


def load_attachment(path: Path) -> FileAttachment:
    """Read a file into the data-URI form uploads arrive in."""
    mime_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
    payload = base64.b64encode(path.read_bytes()).decode('ascii')
    return FileAttachment(name=path.name, type=mime_type, data=f'data:{mime_type};base64,{payload}')


def print_result(result: RunResult, state: StateStore) -> None:
    print(f"\n{'=' * 70}")
    print(f"RUN {result.trace_id} ({result.intent.value})")
    print('=' * 70)
    print(f"Success: {result.success}")
    if result.error:
        print(f"Error: {result.error}")
    if result.company_name:
        print(f"Company: {result.company_name}")
    if result.candidates:
        print(f"Candidates: {', '.join(result.candidates)}")
    if result.companies_added:
        print(f"Portfolio companies added: {result.companies_added}")

    print("\n--- Step Log ---")
    for step in state.logs_for_trace(result.trace_id):
        latency = f"{step.latency_ms}ms" if step.latency_ms is not None else '-'
        print(f"  [{step.status.value:>9}] {step.agent_name}: {step.message} ({latency})")

    if result.opinion:
        print("\n--- IC Opinion ---")
        print(result.opinion)

    print(f"\nStage timings: {result.stage_timings}")


def write_exports(state: StateStore, deal_id: str | None, directory: Path) -> None:
    room = state.get_deal(deal_id)
    if room is None:
        print("No deal committed; nothing to export.")
        return

    directory.mkdir(parents=True, exist_ok=True)
    record = room.data
    csv_path = directory / export_filename(record.company_name, 'csv')
    memo_path = directory / export_filename(record.company_name, 'memo')
    csv_path.write_text(deal_to_csv(record))
    memo_path.write_text(memo_to_markdown(record))
    print(f"\nExported {csv_path} and {memo_path}")


async def main(args: argparse.Namespace) -> int:
    missing = config.validate()
    if missing:
        print(f"Missing or invalid configuration: {', '.join(missing)}")
        return 1

    configure_logging(json_output=args.json_logs, log_level=config.LOG_LEVEL)

    state = StateStore(FileKeyValueStore(args.state_dir), key_prefix=config.KEY_PREFIX)
    if args.reset:
        state.reset()
    state.hydrate()

    client = OpenAIModelClient(api_key=config.OPENAI_API_KEY)
    team = DealTeamOrchestrator(state, client)
    attachments = [load_attachment(Path(p)) for p in args.file]

    try:
        if args.portfolio:
            result = await team.ingest_portfolio(attachments)
        else:
            result = await team.handle_user_message(args.prompt, attachments or None)
    finally:
        await client.close()

    print_result(result, state)
    if args.export and result.deal_id:
        write_exports(state, result.deal_id, Path(args.export))
    return 0 if result.success else 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Run the deal team pipeline once.')
    parser.add_argument('prompt', nargs='?', default='', help='Request for the deal team')
    parser.add_argument('--file', action='append', default=[], help='Document to attach (repeatable)')
    parser.add_argument('--portfolio', action='store_true', help='Ingest --file documents into the portfolio')
    parser.add_argument('--state-dir', default=config.STATE_DIR, help='Directory of the state store')
    parser.add_argument('--export', metavar='DIR', help='Write CSV model and Markdown memo to DIR')
    parser.add_argument('--reset', action='store_true', help='Clear stored state before running')
    parser.add_argument('--json-logs', action='store_true', help='Emit JSON log lines')

    args = parser.parse_args(argv)
    if args.portfolio and not args.file:
        parser.error('--portfolio requires at least one --file')
    if not args.portfolio and not args.prompt and not args.file:
        parser.error('a prompt or at least one --file is required')
    return args


if __name__ == '__main__':
    sys.exit(asyncio.run(main(parse_args())))
