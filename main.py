#!/usr/bin/env python3
"""Peer support job scraper: run scrapes, archive stale postings, serve the jobs API."""

import http.server
import json
import logging
import math
import os
import socketserver
import sys
import threading
from dataclasses import asdict
from datetime import datetime, timezone
from urllib.parse import parse_qsl, urlsplit

from pydantic import ValidationError

import config
from archive import archive_old_jobs, save_run_report
from db import JobRepository
from models import parse_filter
from scheduler import get_scraper_stats, run_cycle, scrape_source, start_schedule

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

USAGE = "usage: main.py [run | scrape <source> | archive [days] | schedule | serve [port]]"


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def to_json(payload) -> bytes:
    return json.dumps(payload, default=_json_default).encode()


def open_repo() -> JobRepository:
    repo = JobRepository(config.DB_PATH)
    repo.init_db()
    return repo


def run_once(repo: JobRepository) -> None:
    """One full cycle from the command line: scrape everything, archive, write a report."""
    result, archived = run_cycle(repo)
    report = save_run_report(result, archived, config.REPORTS_DIR)

    print(f"\n{'='*50}")
    print("Peer Support Job Scrape")
    print(f"{'='*50}")
    for r in result.results:
        status = " (cancelled)" if r.cancelled else ""
        print(f"{r.source}: {r.jobs_scraped} scraped, {r.jobs_saved} saved, "
              f"{r.duplicates_skipped} duplicates, {len(r.errors)} errors{status}")
    print(f"Archived: {archived}")
    print(f"Report: {report}")
    print(f"{'='*50}")


class JobsApiHandler(http.server.BaseHTTPRequestHandler):
    """Trigger and query endpoints for the job board.

    GET  /api/cron/scrape  scrape all sources then archive (Bearer CRON_SECRET when set)
    POST /api/jobs         scrape one source: {"source": "Indeed"}
    GET  /api/jobs         active postings, filtered and paginated
    GET  /api/stats        posting counts and the newest postings
    """

    protocol_version = "HTTP/1.1"
    _MAX_BODY = 64 * 1024

    def _send_json(self, status: int, payload) -> None:
        data = to_json(payload)
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(data)

    def _send_error_json(self, status: int, message: str) -> None:
        self._send_json(status, {"success": False, "error": message})

    def do_GET(self):
        parts = urlsplit(self.path)
        try:
            if parts.path == "/api/cron/scrape":
                self._handle_cron()
            elif parts.path == "/api/jobs":
                self._handle_list_jobs(parts.query)
            elif parts.path == "/api/stats":
                self._handle_stats()
            else:
                self._send_error_json(404, "Not found")
        except Exception as e:
            logger.error(f"GET {parts.path} failed: {e}", exc_info=True)
            self._send_error_json(500, str(e))

    def do_POST(self):
        parts = urlsplit(self.path)
        try:
            if parts.path == "/api/jobs":
                self._handle_manual_scrape()
            else:
                self._send_error_json(404, "Not found")
        except Exception as e:
            logger.error(f"POST {parts.path} failed: {e}", exc_info=True)
            self._send_error_json(500, str(e))

    def _authorized(self) -> bool:
        secret = config.CRON_SECRET
        if not secret:
            return True
        return self.headers.get("Authorization", "") == f"Bearer {secret}"

    def _run_exclusive(self, fn):
        """Run fn under the server's scrape lock; None (after a 409) if a scrape is already running."""
        lock = self.server.scrape_lock
        if not lock.acquire(blocking=False):
            self._send_error_json(409, "Scrape already in progress")
            return None
        try:
            return fn()
        finally:
            lock.release()

    def _handle_cron(self):
        if not self._authorized():
            self._send_error_json(401, "Unauthorized")
            return

        logger.info("[cron] Starting scheduled scraper run...")
        outcome = self._run_exclusive(lambda: run_cycle(self.server.repo))
        if outcome is None:
            return
        result, archived = outcome

        self._send_json(200, {
            "success": True,
            "data": {
                "scraper_result": asdict(result),
                "archived_jobs": archived,
                "timestamp": datetime.now(timezone.utc),
            },
        })

    def _handle_manual_scrape(self):
        try:
            length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            length = -1
        if length < 0:
            self._send_error_json(400, "Invalid Content-Length")
            return
        if length > self._MAX_BODY:
            self._send_error_json(413, "Request body too large")
            return
        body = self.rfile.read(length) if length else b""
        try:
            data = json.loads(body) if body else {}
        except json.JSONDecodeError:
            self._send_error_json(400, "Invalid JSON")
            return
        if not isinstance(data, dict):
            self._send_error_json(400, "Expected a JSON object")
            return

        source = data.get("source") or "Indeed"
        try:
            result = self._run_exclusive(lambda: scrape_source(source, self.server.repo))
        except ValueError as e:
            self._send_error_json(400, str(e))
            return
        if result is None:
            return

        self._send_json(200, {
            "success": True,
            "data": {
                **asdict(result),
                "message": f"Scraping completed in {result.duration / 1000:.2f}s",
            },
        })

    def _handle_list_jobs(self, query: str):
        try:
            filters = parse_filter(dict(parse_qsl(query)))
        except ValidationError as e:
            self._send_error_json(400, str(e))
            return

        jobs, total = self.server.repo.find_jobs(filters)
        total_pages = math.ceil(total / filters.limit)
        self._send_json(200, {
            "success": True,
            "data": {
                "jobs": [asdict(job) for job in jobs],
                "pagination": {
                    "page": filters.page,
                    "limit": filters.limit,
                    "total": total,
                    "total_pages": total_pages,
                    "has_more": filters.page < total_pages,
                },
            },
        })

    def _handle_stats(self):
        stats = get_scraper_stats(self.server.repo)
        stats["recent_jobs"] = [
            {"id": j.id, "title": j.title, "company": j.company, "source": j.source, "scraped_at": j.scraped_at}
            for j in stats["recent_jobs"]
        ]
        self._send_json(200, {"success": True, "data": stats})

    def log_message(self, format, *args):
        logger.info(f"[http] {self.address_string()} {format % args}")


class ThreadedHTTPServer(socketserver.ThreadingMixIn, http.server.HTTPServer):
    daemon_threads = True


def make_server(repo: JobRepository, port: int = 8080, bind_addr: str = "localhost") -> ThreadedHTTPServer:
    server = ThreadedHTTPServer((bind_addr, port), JobsApiHandler)
    server.repo = repo
    server.scrape_lock = threading.Lock()
    return server


def serve(repo: JobRepository, port: int = 8080):
    bind_addr = os.environ.get("BIND_ADDR", "localhost")
    with make_server(repo, port, bind_addr) as server:
        print(f"Serving jobs API at http://{bind_addr}:{port}")
        print("Press Ctrl+C to stop")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            print("\nStopped.")


def main(argv: list[str]) -> int:
    command = argv[0] if argv else "run"
    repo = open_repo()

    if command == "run":
        run_once(repo)
    elif command == "scrape" and len(argv) > 1:
        result = scrape_source(argv[1], repo)
        print(f"{result.source}: {result.jobs_scraped} scraped, {result.jobs_saved} saved, "
              f"{result.duplicates_skipped} duplicates, {len(result.errors)} errors")
    elif command == "archive":
        days = int(argv[1]) if len(argv) > 1 else config.ARCHIVE_DAYS
        print(f"Archived {archive_old_jobs(repo, days)} jobs")
    elif command == "schedule":
        start_schedule(repo)
    elif command == "serve":
        serve(repo, int(argv[1]) if len(argv) > 1 else 8080)
    else:
        print(USAGE, file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main(sys.argv[1:]))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(2)
    except Exception as e:
        logger.error(f"Scrape failed: {e}", exc_info=True)
        sys.exit(1)
