#!/usr/bin/env python3
"""
SharePoint User Permissions Report - Find everywhere a user holds permissions.

This script walks a site collection (subsites, lists/libraries and folders)
and reports every object where the given user has access, either granted
directly or through membership of a SharePoint group. Objects that inherit
their permissions are skipped, so only broken inheritance costs extra calls.

Prerequisites:
- requests library (pip install requests)
- A SharePoint access token in SPAUDIT_ACCESS_TOKEN, or an rclone
  SharePoint remote in ~/.config/rclone/rclone.conf

Usage:
    python -m spaudit.user_permissions_report [options] site_url user

Options:
    --remote REMOTE_NAME    rclone remote holding the token (default: auto-detect)
    --config FILE           INI settings file with an [audit] section
    --output FILE           CSV report path (default: <user>_permissions.csv)
    --batch-size N          Items fetched per list request (default: 500)
    --max-retries N         Attempts per throttled request (default: 10)
    --retry-delay SECONDS   First backoff delay, doubled each retry (default: 5)
    --folders-only          Only request folder items from lists
    --json-output           Print the report as JSON instead of writing CSV
    --verbose               Debug logging

Examples:
    python -m spaudit.user_permissions_report https://contoso.sharepoint.com/sites/hr alice@contoso.com
    python -m spaudit.user_permissions_report --folders-only --output alice.csv \\
        https://contoso.sharepoint.com/sites/hr alice@contoso.com
"""

import argparse
import logging
import sys
import time
from typing import Optional

import requests

from .config_utils import get_access_token, load_settings
from .context import AuditContext
from .errors import AuditError, ConfigError, RetriesExhausted, SharePointApiError, describe_api_error
from .models import TreeNode
from .report import CsvReportWriter, rows_to_json
from .sharepoint_client import SharePointClient
from .walker import audit_user_permissions


def print_progress(lst: TreeNode, processed: int, total: int, finished: bool = False) -> None:
    """Overwrite a single console line with the current list scan position."""
    if not total or not processed:
        return
    if finished:
        print()
        return
    percent = min(100.0, processed * 100.0 / total)
    print(f"\r   📄 {lst.title}: {processed}/{total} ({percent:.0f}%)", end="", flush=True)


def default_output_path(user: str) -> str:
    safe = "".join(ch if ch.isalnum() or ch in "._-" else "_" for ch in user.split("|")[-1])
    return f"{safe}_permissions.csv"


def run_report(
    site_url: str,
    user: str,
    rclone_remote: Optional[str] = None,
    config_path: Optional[str] = None,
    output_path: Optional[str] = None,
    json_output: bool = False,
    **overrides,
) -> int:
    """
    Run the audit and write the report. Returns the process exit code.

    Args:
        site_url: Site collection URL
        user: Login name or email of the user to search for
        rclone_remote: rclone remote holding the access token
        config_path: Optional INI settings file
        output_path: CSV path; ignored with json_output
        json_output: Print JSON to stdout instead of writing CSV
        **overrides: AuditSettings values taken from the command line
    """
    print("=== SharePoint User Permissions Report ===")
    print(f"Site: {site_url}")
    print(f"User: {user}")

    try:
        settings = load_settings(config_path, site_url=site_url, target_user=user, **overrides)
        access_token = get_access_token(rclone_remote)
    except ConfigError as e:
        print(f"❌ {e}")
        return 2

    print(f"Batch size: {settings.batch_size}, max retries: {settings.max_attempts}")
    if settings.folders_only:
        print("Folders only: yes")
    print()

    client = SharePointClient(settings.site_url, access_token, timeout=settings.timeout)
    context = AuditContext.from_settings(client, settings)
    rows = audit_user_permissions(context, settings.target_user, progress=print_progress)

    start_time = time.time()
    try:
        if json_output:
            scan_info = {"site_url": settings.site_url, "target_user": settings.target_user}
            report = rows_to_json(rows, scan_info)
            count = None
        else:
            output_path = output_path or default_output_path(settings.target_user)
            with open(output_path, "w", newline="", encoding="utf-8") as stream:
                count = CsvReportWriter(stream).write_all(rows)
    except SharePointApiError as e:
        print()
        print(f"❌ {e}")
        for line in describe_api_error(e.status_code):
            print(line)
        return 1
    except RetriesExhausted as e:
        print()
        print(f"❌ {e}")
        for line in describe_api_error(429):
            print(line)
        return 1
    except (AuditError, requests.exceptions.RequestException) as e:
        print()
        print(f"❌ Audit aborted: {e}")
        return 1
    scan_time = time.time() - start_time

    print()
    print("=" * 80)
    if json_output:
        print(report)
    elif count:
        print(f"✅ Found {count} permission entr{'y' if count == 1 else 'ies'} in {scan_time:.1f} seconds")
        print(f"📁 Report written to {output_path}")
    else:
        print(f"ℹ️  No permissions found for {user} in {scan_time:.1f} seconds")
        print(f"📁 Empty report written to {output_path}")
    return 0


def main(argv=None) -> int:
    """Main function"""
    parser = argparse.ArgumentParser(description="Report everywhere a user holds permissions in a SharePoint site collection")
    parser.add_argument("site_url", help="Site collection URL, e.g. https://contoso.sharepoint.com/sites/hr")
    parser.add_argument("user", help="Login name or email of the user to search for")
    parser.add_argument("--remote", default=None,
                        help="Name of the rclone remote holding the token (default: auto-detect)")
    parser.add_argument("--config", default=None, help="INI settings file with an [audit] section")
    parser.add_argument("--output", default=None, help="CSV report path")
    parser.add_argument("--batch-size", type=int, default=None,
                        help="Items fetched per list request (default: 500)")
    parser.add_argument("--max-retries", type=int, default=None,
                        help="Attempts per throttled request (default: 10)")
    parser.add_argument("--retry-delay", type=float, default=None,
                        help="First backoff delay in seconds, doubled each retry (default: 5)")
    parser.add_argument("--folders-only", action="store_true", default=None,
                        help="Only request folder items from lists")
    parser.add_argument("--json-output", action="store_true",
                        help="Output results in JSON format instead of CSV")
    parser.add_argument("--verbose", action="store_true", help="Show debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    return run_report(
        args.site_url,
        args.user,
        rclone_remote=args.remote,
        config_path=args.config,
        output_path=args.output,
        json_output=args.json_output,
        batch_size=args.batch_size,
        max_attempts=args.max_retries,
        initial_delay=args.retry_delay,
        folders_only=args.folders_only,
    )


if __name__ == "__main__":
    sys.exit(main())
