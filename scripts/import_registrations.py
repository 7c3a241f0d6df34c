#!/usr/bin/env python3
"""CLI script to import HubSpot form submissions into a forum.

Usage:
    python scripts/import_registrations.py --forum-id f-2026-dallas --kind initial_registration
    python scripts/import_registrations.py --forum-id f-2026-dallas --kind executive_profile --form-id 1234-abcd
    python scripts/import_registrations.py --forum-id f-2026-dallas --kind initial_registration --dry-run

Connects directly to the database using DATABASE_URL from environment or .env
file. The form id defaults to the one configured in the forum's settings.
With --dry-run nothing is written and a duplicate preview is printed instead.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.registrar
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


async def run_import(
    forum_id: str, kind: str, form_id: str | None, dry_run: bool, force_enrich: bool
) -> int:
    """Run one import and print a summary. Returns the process exit code."""
    from src.registrar.api.middleware.logging import configure_structlog
    from src.registrar.attendees.schemas import ImportKind
    from src.registrar.config import get_settings
    from src.registrar.core.database import close_db, init_db
    from src.registrar.errors import RegistrarError
    from src.registrar.main import build_services

    configure_structlog()
    await init_db()

    services = build_services(get_settings())
    import_kind = ImportKind(kind)

    try:
        if not form_id:
            forum_settings = await services["attendee_repository"].get_forum_settings(forum_id)
            form_id = (
                getattr(forum_settings, f"{import_kind.value}_form_id", None)
                if forum_settings
                else None
            )
        if not form_id:
            print(f"No {import_kind.value} form configured for forum {forum_id}; pass --form-id")
            return 2

        result = await services["submission_importer"].run(
            import_kind,
            form_id,
            forum_id=forum_id,
            persist=not dry_run,
            force_enrich=force_enrich,
        )
    except RegistrarError as exc:
        print(f"Import failed: {exc}")
        return 1
    finally:
        await close_db()

    print(f"Form {result.form_id}: {result.total_submissions} submissions in {len(result.pagination)} page(s)")

    if result.duplicate_preview is not None:
        preview = result.duplicate_preview
        print(f"  Dry run: {preview.new} new, {preview.duplicates} already registered")
        for email in preview.duplicate_emails:
            print(f"    = {email}")

    if result.save_results is not None:
        saved = result.save_results
        print(f"  Created: {saved.created}")
        print(f"  Updated: {saved.updated}")
        print(f"  Errors:  {len(saved.errors)}")
        for error in saved.errors:
            print(f"    ! {error.error}")

    if result.enrichment_results is not None:
        enrichment = result.enrichment_results
        print(f"  Enriched: {enrichment.enriched} (skipped {enrichment.skipped})")
        for message in enrichment.errors:
            print(f"    ! {message}")

    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Import HubSpot form submissions into a forum")
    parser.add_argument("--forum-id", required=True, help="Forum id (as in the forums source)")
    parser.add_argument(
        "--kind",
        required=True,
        choices=["initial_registration", "executive_profile"],
        help="Which form the submissions come from",
    )
    parser.add_argument("--form-id", default=None, help="HubSpot form id (defaults to forum settings)")
    parser.add_argument("--dry-run", action="store_true", help="Fetch and preview without writing")
    parser.add_argument(
        "--force-enrich",
        action="store_true",
        help="Re-enrich executive profiles that were already enriched",
    )
    args = parser.parse_args()

    sys.exit(
        asyncio.run(
            run_import(args.forum_id, args.kind, args.form_id, args.dry_run, args.force_enrich)
        )
    )


if __name__ == "__main__":
    main()
