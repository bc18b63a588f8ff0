"""One-shot attachment commands: upload a file, reprocess, delete, print a URL."""

from __future__ import annotations

import argparse
import mimetypes
import sys
from pathlib import Path

from loguru import logger

from attachkit.application.profile import AttachmentProfile
from attachkit.application.use_cases.attachment_lifecycle import AttachmentLifecycle
from attachkit.domain.errors import AttachmentError
from attachkit.infrastructure import get_settings, get_sqlite_repository


def build_lifecycle() -> AttachmentLifecycle:
    """Wire a lifecycle from environment settings."""
    settings = get_settings()
    options = settings.to_options()
    datastore = get_sqlite_repository(settings.db_path, table_name=options.table_name)
    profile = AttachmentProfile.configure(
        options.table_name,
        options,
        datastore=datastore,
        tempfile_path=settings.tempfile_path,
    )
    return AttachmentLifecycle(profile)


def _cmd_upload(lifecycle: AttachmentLifecycle, args: argparse.Namespace) -> int:
    path = Path(args.path)
    content_type = args.content_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    result = lifecycle.receive_upload(path, content_type, args.filename or path.name)

    if not result.ok:
        for error in result.errors:
            print(f"invalid: {error}")
        return 1

    attachment = result.attachment
    print(f"Stored attachment {attachment.id}: {attachment.filename} ({attachment.size} bytes)")
    print(f"  url: {lifecycle.public_url_for(attachment)}")
    for label in lifecycle.profile.options.thumbnails.labels:
        print(f"  {label}: {lifecycle.public_url_for(attachment, label)}")
    for error in result.thumbnail_errors:
        print(f"  warning: {error}")
    return 0


def _cmd_reprocess(lifecycle: AttachmentLifecycle, args: argparse.Namespace) -> int:
    attachment = lifecycle.profile.datastore.get(args.id)
    if attachment is None:
        print(f"No attachment with id {args.id}")
        return 1
    result = lifecycle.reprocess(attachment)
    for error in result.errors:
        print(f"invalid: {error}")
    for error in result.thumbnail_errors:
        print(f"warning: {error}")
    return 0 if result.ok else 1


def _cmd_delete(lifecycle: AttachmentLifecycle, args: argparse.Namespace) -> int:
    lifecycle.delete_attachment(args.id)
    print(f"Deleted attachment {args.id}")
    return 0


def _cmd_url(lifecycle: AttachmentLifecycle, args: argparse.Namespace) -> int:
    attachment = lifecycle.profile.datastore.get(args.id)
    if attachment is None:
        print(f"No attachment with id {args.id}")
        return 1
    print(lifecycle.public_url_for(attachment, args.label))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Manage stored attachments")
    sub = parser.add_subparsers(dest="command", required=True)

    upload = sub.add_parser("upload", help="Store a file and derive its thumbnails")
    upload.add_argument("path", help="File to upload")
    upload.add_argument("--content-type", default=None, help="Declared content type (default: guessed)")
    upload.add_argument("--filename", default=None, help="Declared filename (default: the file's name)")

    reprocess = sub.add_parser("reprocess", help="Re-derive thumbnails from stored bytes")
    reprocess.add_argument("id", type=int)

    delete = sub.add_parser("delete", help="Delete an attachment and its thumbnails")
    delete.add_argument("id", type=int)

    url = sub.add_parser("url", help="Print the public URL of an attachment")
    url.add_argument("id", type=int)
    url.add_argument("--label", default=None, help="Thumbnail label")

    args = parser.parse_args(argv)

    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=get_settings().log_level,
    )

    commands = {
        "upload": _cmd_upload,
        "reprocess": _cmd_reprocess,
        "delete": _cmd_delete,
        "url": _cmd_url,
    }
    try:
        lifecycle = build_lifecycle()
        return commands[args.command](lifecycle, args)
    except AttachmentError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
