import logging
import os
from datetime import datetime, timedelta, timezone

from models import ScrapeResult, SchedulerResult

logger = logging.getLogger(__name__)


def archive_old_jobs(repo, days_old: int = 90) -> int:
    """Mark active postings scraped more than days_old days ago inactive. Returns the count."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=days_old)
    count = repo.update_many_inactive(cutoff)
    logger.info(f"[archive] Archived {count} jobs older than {days_old} days")
    return count


def save_run_report(result: SchedulerResult, archived: int, output_dir: str = "reports/") -> str:
    """Write a scheduler run summary as markdown. Returns the filename."""
    os.makedirs(output_dir, exist_ok=True)
    stamp = result.timestamp.strftime("%Y-%m-%d-%H%M")
    filename = os.path.join(output_dir, f"scrape-{stamp}.md")

    lines = [f"# Scrape Run: {result.timestamp.strftime('%Y-%m-%d %H:%M')} UTC\n"]
    lines.append(f"**{result.total_jobs_saved} new jobs saved** from "
                 f"{result.total_jobs_scraped} scraped, {result.total_duplicates} duplicates skipped, "
                 f"{result.total_errors} errors\n")
    lines.append(f"**Archived:** {archived} | **Duration:** {_format_duration(result.duration)}\n")

    if not result.results:
        lines.append("No sources were run.\n")
    for source_result in result.results:
        lines.extend(_render_source(source_result))

    with open(filename, "w") as f:
        f.write("\n".join(lines))

    return filename


def _render_source(result: ScrapeResult) -> list[str]:
    lines = [f"## {result.source}\n"]
    lines.append(f"- Scraped: {result.jobs_scraped}")
    lines.append(f"- Saved: {result.jobs_saved}")
    lines.append(f"- Duplicates skipped: {result.duplicates_skipped}")
    lines.append(f"- Duration: {_format_duration(result.duration)}")
    if result.cancelled:
        lines.append("- Cancelled before finishing")

    if result.errors:
        lines.append(f"\n### Errors ({len(result.errors)})\n")
        for error in result.errors:
            lines.append(f"- {error}")

    lines.append("")
    return lines


def _format_duration(ms: int) -> str:
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"
