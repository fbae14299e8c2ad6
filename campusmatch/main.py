from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Set

import shortuuid
import typer
from rich import print
from rich.table import Table

from .config import Settings, WriteFailurePolicy, load_settings
from .ingest import load_candidates, load_seekers, pairs_frame
from .logger import configure_logging
from .matcher import PairingOrchestrator
from .store import MemoryMatchStore, SqlMatchStore, get_session, init_database, matched_candidate_ids
from .validation import (
	ALREADY_MATCHED,
	candidate_errors,
	drop_matched_seekers,
	filter_pool,
	partition_candidates,
	partition_seekers,
	seeker_errors,
)


app = typer.Typer(help="Campus Match operator CLI")


def _settings() -> Settings:
	settings = load_settings()
	configure_logging(settings.log_level, log_dir=settings.log_dir)
	return settings


def _names(records: List[dict]) -> Dict[str, str]:
	return {
		str(r.get("candidate_id")): str(r.get("display_name") or "")
		for r in records
		if r.get("candidate_id") is not None
	}


def _matched_ids(database_url: str) -> Set[str]:
	init_database(database_url)
	session = get_session(database_url)
	try:
		return matched_candidate_ids(session)
	finally:
		session.close()


@app.command("init-db")
def init_db():
	"""Create the match_results table in the configured database."""
	settings = _settings()
	init_database(settings.database_url)
	print(f"[green]Initialized[/green] {settings.database_url}")


@app.command()
def validate(
	seekers_csv: Path = typer.Argument(..., help="Seeker cohort CSV"),
	candidates_csv: Path = typer.Argument(..., help="Candidate pool CSV"),
	preferences_csv: Optional[Path] = typer.Option(None, "--preferences", help="Separate preference profiles CSV"),
	check_db: bool = typer.Option(False, "--check-db", help="Also exclude people already matched in the database"),
):
	"""Report which records would be excluded from a matching run and why."""
	settings = _settings()
	seekers = load_seekers(seekers_csv, preferences_csv)
	candidates = load_candidates(candidates_csv)
	already_matched = _matched_ids(settings.database_url) if check_db else set()

	table = Table("cohort", "record", "problems")
	for record in seekers:
		errors = seeker_errors(record)
		if errors:
			table.add_row("seeker", str(record.get("candidate_id")), "; ".join(errors))
	for record in candidates:
		errors = candidate_errors(record)
		if errors:
			table.add_row("candidate", str(record.get("candidate_id")), "; ".join(errors))

	valid_seekers, seeker_report = partition_seekers(seekers)
	valid_candidates, candidate_report = partition_candidates(candidates)
	for seeker_id in seeker_report.duplicate_ids:
		table.add_row("seeker", seeker_id, "duplicate id")
	for candidate_id in candidate_report.duplicate_ids:
		table.add_row("candidate", candidate_id, "duplicate id")
	valid_seekers, matched_seekers = drop_matched_seekers(valid_seekers, already_matched)
	for seeker_id in matched_seekers:
		table.add_row("seeker", seeker_id, ALREADY_MATCHED)
	pool, dropped = filter_pool(valid_seekers, valid_candidates, already_matched)
	for candidate_id, reason in dropped.items():
		table.add_row("candidate", candidate_id, reason)

	print(f"Seekers: {len(valid_seekers)}/{len(seekers)} valid")
	print(f"Candidates: {len(pool)}/{len(candidates)} valid")
	if len(valid_seekers) < len(seekers) or len(pool) < len(candidates):
		print(table)


@app.command()
def simulate(
	seeker_id: str = typer.Argument(..., help="Seeker to preview"),
	seekers_csv: Path = typer.Argument(..., help="Seeker cohort CSV"),
	candidates_csv: Path = typer.Argument(..., help="Candidate pool CSV"),
	preferences_csv: Optional[Path] = typer.Option(None, "--preferences", help="Separate preference profiles CSV"),
	top_k: Optional[int] = typer.Option(None, help="Number of candidates to show"),
):
	"""Preview the ranked partners for one seeker without writing anything."""
	settings = _settings()
	seekers = load_seekers(seekers_csv, preferences_csv)
	record = next((s for s in seekers if str(s.get("candidate_id")) == seeker_id), None)
	if record is None:
		print(f"[red]Seeker {seeker_id} not found in {seekers_csv}[/red]")
		raise typer.Exit(code=1)

	orchestrator = PairingOrchestrator(store=MemoryMatchStore())
	try:
		selected, partners = orchestrator.simulate(
			record, load_candidates(candidates_csv), top_k=top_k or settings.simulation_top_k
		)
	except ValueError as e:
		print(f"[red]{e}[/red]")
		raise typer.Exit(code=1)

	cols = ["#", "candidate", "name", "score", "age", "height", "mbti", "personality", "dating", "lifestyle"]
	table = Table(*cols)
	for i, r in enumerate(partners, start=1):
		b = r.breakdown
		if b.excluded:
			parts = [b.excluded_reason or "", "", "", "", "", ""]
		else:
			parts = [str(b.age), str(b.height), str(b.mbti), str(b.personality), str(b.dating_style), str(b.lifestyle)]
		table.add_row(str(i), r.candidate_id, r.display_name, str(r.score), *parts)
	print(table)
	if selected is None:
		print("[yellow]No candidate scores above zero; this seeker would stay unmatched.[/yellow]")
	else:
		print(f"[bold]Would pair with[/bold] {selected.display_name} ({selected.candidate_id}), score={selected.score}")


@app.command()
def run(
	seekers_csv: Path = typer.Argument(..., help="Seeker cohort CSV, in serving order"),
	candidates_csv: Path = typer.Argument(..., help="Candidate pool CSV"),
	preferences_csv: Optional[Path] = typer.Option(None, "--preferences", help="Separate preference profiles CSV"),
	dry_run: bool = typer.Option(False, "--dry-run/--commit", help="Keep results in memory instead of the database"),
	out_path: Optional[Path] = typer.Option(None, "--out", help="Write committed pairs to this CSV"),
	policy: Optional[WriteFailurePolicy] = typer.Option(None, help="Pool handling when a write fails"),
):
	"""Run the greedy matching pass and persist each pair as it is committed."""
	settings = _settings()
	seekers = load_seekers(seekers_csv, preferences_csv)
	candidates = load_candidates(candidates_csv)
	run_id = shortuuid.uuid()

	session = None
	if dry_run:
		store = MemoryMatchStore()
	else:
		init_database(settings.database_url)
		session = get_session(settings.database_url)
		store = SqlMatchStore(session, run_id=run_id)

	def progress(pairs_done: int, total_pairs: int, seeker_id: str, candidate_id: str, score: int) -> None:
		# Print every 10 pairs and on the final pair
		if total_pairs <= 0:
			return
		if (pairs_done % 10 == 0) or (pairs_done == total_pairs):
			pct = int(100 * pairs_done / total_pairs)
			print(f"   - [{pairs_done}/{total_pairs} | {pct}%] last: {seeker_id} -> {candidate_id} (score={score})")

	orchestrator = PairingOrchestrator(
		store=store,
		write_failure_policy=policy or settings.write_failure_policy,
		progress_fn=progress,
	)
	try:
		# people paired by an earlier run stay out of this one
		already_matched = store.matched_candidate_ids()
		summary = orchestrator.run_matching(seekers, candidates, run_id=run_id, already_matched=already_matched)
	finally:
		if session is not None:
			session.close()

	table = Table("run", "pairs", "unmatched", "seekers excluded", "candidates excluded")
	table.add_row(
		summary.run_id,
		str(summary.pair_count),
		str(len(summary.unmatched)),
		f"{summary.seekers_excluded}/{summary.seekers_received}",
		f"{summary.candidates_excluded}/{summary.candidates_received}",
	)
	print(table)
	for u in summary.unmatched:
		print(f"  unmatched {u.seeker_candidate_id}: {u.reason.value}")

	if out_path:
		names = _names(seekers)
		names.update(_names(candidates))
		pairs_frame(summary.pairs, names).to_csv(out_path, index=False)
		print(f"[green]Saved pairs to[/green] {out_path}")
	target = "memory (dry run)" if dry_run else settings.database_url
	print(f"[bold]Generated {summary.pair_count} pairs[/bold] -> {target}")


if __name__ == "__main__":
	app()
