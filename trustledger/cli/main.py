# trustledger/cli/main.py
"""
CLI for appending to, inspecting and verifying the trust ledger log.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

import typer
from rich.console import Console
from rich.table import Table

from trustledger.chain.ledger import TrustLedger
from trustledger.core.errors import LedgerError
from trustledger.core.types import DEFAULT_TIMELINE_SIZE, VoteResult
from trustledger.integration.collaborators import TrustFlow
from trustledger.storage import JSONLStorage
from trustledger.verify.verifier import verify_entry, verify_from_storage

app = typer.Typer(
    name="trust-ledger",
    help="Append to, inspect and verify the hash-chained trust ledger",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def get_ledger_path(path_flag: Optional[Path] = None) -> Path:
    """Resolve log path in this order:
    1. --path flag
    2. TRUST_LEDGER_PATH environment variable
    3. Default: ./.data/trust_ledger.jsonl
    """
    if path_flag:
        return path_flag.resolve()
    env_path = os.environ.get("TRUST_LEDGER_PATH")
    if env_path:
        return Path(env_path).resolve()
    return (Path.cwd() / ".data" / "trust_ledger.jsonl").resolve()


def open_existing(path_flag: Optional[Path]) -> JSONLStorage:
    path = get_ledger_path(path_flag)
    if not path.exists():
        console.print(f"[red]Ledger file not found: {path}[/]")
        console.print("[yellow]To get started:[/]")
        console.print("  • Append an entry first: trust-ledger append --score 75 --yes 70 --no 30")
        console.print("  • Set env var: export TRUST_LEDGER_PATH=/path/to/ledger.jsonl")
        console.print("  • Or use --path: trust-ledger timeline --path /custom/ledger.jsonl")
        raise typer.Exit(1)
    return JSONLStorage(path)


def print_commit(result) -> None:
    entry = result.entry
    console.print(f"[green]✓ Committed height {entry.height}[/] ({entry.ledger_id})")
    console.print(f"  hash:     {entry.hash}")
    console.print(f"  prevHash: {entry.prev_hash or '— (genesis)'}")
    if not result.persisted:
        console.print("[yellow]Warning: entry was not written to the ledger file (in-memory only).[/]")


@app.command()
def append(
    score: float = typer.Option(..., "--score", help="Trust score in [0, 100]"),
    yes: int = typer.Option(..., "--yes", help="Yes votes"),
    no: int = typer.Option(..., "--no", help="No votes"),
    address: Optional[str] = typer.Option(None, "--address", "-a", help="Subject address"),
    quorum: int = typer.Option(60, "--quorum"),
    rejected: bool = typer.Option(False, "--rejected", help="Record the vote as rejected even if yes >= quorum"),
    reference_id: str = typer.Option("manual", "--reference-id"),
    path: Optional[Path] = typer.Option(None, "--path", help="Ledger file (overrides TRUST_LEDGER_PATH)"),
):
    """Append one (address, score, vote result) entry."""
    vote = VoteResult(
        approved=yes >= quorum and not rejected,
        yes=yes,
        no=no,
        quorum=quorum,
        reference_id=reference_id,
    )
    ledger = TrustLedger(storage=JSONLStorage(get_ledger_path(path)))
    try:
        result = ledger.record(address, int(score) if score.is_integer() else score, vote)
    except LedgerError as e:
        console.print(f"[red]Append rejected: {e}[/]")
        raise typer.Exit(1)
    finally:
        ledger.close()
    print_commit(result)


@app.command()
def simulate(
    address: Optional[str] = typer.Option(None, "--address", "-a", help="Subject address"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible score/vote"),
    path: Optional[Path] = typer.Option(None, "--path", help="Ledger file (overrides TRUST_LEDGER_PATH)"),
):
    """Score an address, simulate the DAO vote and append the outcome."""
    ledger = TrustLedger(storage=JSONLStorage(get_ledger_path(path)))
    try:
        result = TrustFlow(ledger, seed=seed).run(address)
    finally:
        ledger.close()
    vote = result.entry.vote_result
    verdict = "[green]approved[/]" if vote["approved"] else "[red]rejected[/]"
    console.print(f"Score {result.entry.score} → DAO {verdict} ({vote['yes']} yes / {vote['no']} no, quorum {vote['quorum']})")
    print_commit(result)


@app.command()
def timeline(
    limit: int = typer.Option(DEFAULT_TIMELINE_SIZE, "--limit", "-n", help="Number of recent entries to show"),
    path: Optional[Path] = typer.Option(None, "--path", help="Ledger file (overrides TRUST_LEDGER_PATH)"),
):
    """Show the most recent entries, oldest first."""
    storage = open_existing(path)
    entries = storage.load_recent(limit)

    if not entries:
        console.print("[yellow]No entries found in ledger file.[/]")
        return

    table = Table(title="Trust Ledger")
    table.add_column("Height", justify="right")
    table.add_column("Created")
    table.add_column("Address")
    table.add_column("Score", justify="right")
    table.add_column("DAO")
    table.add_column("Hash")

    for entry in entries:
        vote = entry.vote_result if isinstance(entry.vote_result, Mapping) else {}
        dao = "approved" if vote.get("approved") else "rejected"
        table.add_row(
            str(entry.height),
            entry.created_at,
            entry.address or "—",
            str(entry.score),
            dao,
            entry.hash[:18] + "…",
        )

    console.print(table)


@app.command()
def verify(
    height: Optional[int] = typer.Option(None, "--height", help="Check one entry against its preceding window"),
    window: int = typer.Option(DEFAULT_TIMELINE_SIZE, "--window", "-w", help="Window size for --height"),
    path: Optional[Path] = typer.Option(None, "--path", help="Ledger file (overrides TRUST_LEDGER_PATH)"),
):
    """Verify the whole ledger file, or a single entry with --height."""
    storage = open_existing(path)

    if height is None:
        result = verify_from_storage(storage)
        if result.is_valid:
            console.print(f"[green]✓ Ledger is valid[/] ({result.checked} entries)")
            return
        console.print("[red]✗ Ledger verification failed[/]")
        for failure in result.failures:
            console.print(f"  • [{failure.index}] {failure.category}: {failure.message}")
        raise typer.Exit(1)

    chain = list(storage.iter_entries())
    matches = [i for i, e in enumerate(chain) if e.height == height]
    if not matches:
        console.print(f"[red]No entry at height {height}[/]")
        raise typer.Exit(1)
    idx = matches[-1]
    prior = chain[max(0, idx - window):idx]

    outcome = verify_entry(chain[idx], prior)
    console.print(f"hashOk={outcome.hash_ok} chainOk={outcome.chain_ok}")
    if outcome.valid:
        console.print(f"[green]✓ Entry {height} is valid[/]")
    else:
        console.print(f"[red]✗ Entry {height} is not valid: {outcome.reason}[/]")
        raise typer.Exit(1)


@app.command()
def status(
    path: Optional[Path] = typer.Option(None, "--path", help="Ledger file (overrides TRUST_LEDGER_PATH)"),
):
    """Show the current tail (what a restarted process would resume from)."""
    storage = open_existing(path)
    last = storage.load_last()
    if last is None:
        console.print("[yellow]Ledger file has no readable entries; next append is genesis.[/]")
        return
    console.print(f"Height:  {last.height}")
    console.print(f"Hash:    {last.hash}")
    console.print(f"Created: {last.created_at}")


if __name__ == "__main__":
    app()
