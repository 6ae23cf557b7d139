import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .core import PhotoTidyApp
from .exceptions import ConfigurationError, PhotoTidyError
from .models import ActionStatus, MoveRequest
from .reporting import ReportGenerator

def setup_logging(verbose: bool, level: str = "INFO", log_file: Optional[str] = None):
    """Sets up logging to the console and, when configured, to a file."""
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)

def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description="Photo Tidy: scan, de-duplicate and organize local media")
    p.add_argument("-c", "--config", type=Path, default=None,
                   help="Settings file (default: $PHOTO_TIDY_CONFIG or ./settings.yaml)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("scan", help="Scan source folders into the catalog")

    dup = sub.add_parser("duplicates", help="List duplicate groups")
    dup.add_argument("--csv", type=Path, default=None, help="Also write the groups to this CSV file")

    tidy = sub.add_parser("tidy", help="Move catalogued files into the target layout")
    tidy.add_argument("ids", nargs="*", type=int, help="Media ids to relocate")
    tidy.add_argument("--duplicates", action="store_true",
                      help="Select every duplicate except the first member of each group")
    tidy.add_argument("--dry-run", action="store_true", help="Plan and report without touching disk or ledger")

    actions = sub.add_parser("actions", help="Show the action ledger")
    actions.add_argument("--status", choices=[s.value for s in ActionStatus], default=None)
    actions.add_argument("--csv", type=Path, default=None, help="Write the ledger to this CSV file")

    recover = sub.add_parser("recover", help="Reconcile actions left pending by an interrupted run")
    recover.add_argument("--dry-run", action="store_true", help="Report only")

    return p.parse_args(argv)

def cmd_scan(app: PhotoTidyApp, args) -> int:
    with tqdm(desc="Scanning", unit="file") as bar:
        summary = app.run_scan(on_progress=lambda p: bar.update(1))

    for err in summary.errors:
        logging.warning(err)
    logging.info(
        f"Discovered {summary.files_discovered}, persisted {summary.files_persisted}, "
        f"skipped {summary.files_skipped}, duplicate groups {summary.duplicate_groups} "
        f"in {summary.duration_ms} ms."
    )
    return 0

def cmd_duplicates(app: PhotoTidyApp, args) -> int:
    groups = app.list_duplicate_groups()
    for group in groups:
        print(f"{group.hash} ({len(group.files)} files)")
        for media in group.files:
            print(f"  [{media.id}] {media.path}")
    logging.info(f"{len(groups)} duplicate groups.")

    if args.csv:
        ReportGenerator(app.db).export_duplicates(args.csv)
    return 0

def cmd_tidy(app: PhotoTidyApp, args) -> int:
    ids = list(args.ids)
    if args.duplicates:
        for group in app.list_duplicate_groups():
            ids.extend(m.id for m in group.files[1:])
    requests = [MoveRequest(media_id=i) for i in dict.fromkeys(ids)]

    with tqdm(total=len(requests), desc="Tidying", unit="file") as bar:
        def on_progress(p):
            bar.update(1)
            if p.error:
                tqdm.write(f"[{p.status}] {p.source or p.media_id}: {p.error}")

        summary = app.execute_tidy(requests, dry_run=args.dry_run, on_progress=on_progress)

    prefix = "[DRY RUN] " if summary.dry_run else ""
    logging.info(
        f"{prefix}Total {summary.total}, moved {summary.moved}, skipped {summary.skipped}, "
        f"failed {summary.failed} in {summary.duration_ms} ms."
    )
    return 1 if summary.failed else 0

def cmd_actions(app: PhotoTidyApp, args) -> int:
    if args.csv:
        ReportGenerator(app.db).export_actions(args.csv, args.status)
        return 0

    for a in app.db.list_actions(args.status):
        line = f"#{a.id} [{a.status.value}] {a.source_path} -> {a.target_path}"
        if a.error_msg:
            line += f" ({a.error_msg})"
        print(line)
    return 0

def cmd_recover(app: PhotoTidyApp, args) -> int:
    result = app.recover_actions(dry_run=args.dry_run)
    for detail in result.details:
        print(detail)
    logging.info(f"Examined {result.examined}: {result.completed} completed, {result.failed} failed.")
    return 0

COMMANDS = {
    "scan": cmd_scan,
    "duplicates": cmd_duplicates,
    "tidy": cmd_tidy,
    "actions": cmd_actions,
    "recover": cmd_recover,
}

def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    app = PhotoTidyApp(args.config)
    try:
        settings = app.reload()
        setup_logging(args.verbose, settings.log_level, settings.log_file)
        return COMMANDS[args.command](app, args)
    except ConfigurationError as e:
        logging.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 130
    except PhotoTidyError:
        logging.exception("Fatal error.")
        return 1
    finally:
        app.close()

if __name__ == "__main__":
    sys.exit(main())
