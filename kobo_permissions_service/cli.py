import aiohttp
import argparse
import asyncio
import json
import sys

from pathlib import Path

from . import __version__
from .config import Config, get_config
from .kobo_client import BaseKoboClient, KoboRemoteError, get_kobo_client
from .logger import get_logger
from .models import ExportRequest, UpdateRequest
from .operations import export_permission_rows, plan_permission_update, update_permissions
from .permissions.tsv import TSVFormatError, parse_tsv, rows_to_tsv, template_tsv
from .utils import json_model_dump_kwargs


def _token(config: Config, args) -> str:
    return getattr(args, "token", None) or config.kobo_token


def _missing_exit(missing: list[str]) -> int:
    print(f"Missing required values: {', '.join(missing)}", file=sys.stderr)
    return 1


def _remote_error_exit(e: Exception) -> int:
    match e:
        case KoboRemoteError():
            print(f"{e.message} (status {e.status}): {e.body}", file=sys.stderr)
        case aiohttp.ClientError() | asyncio.TimeoutError():
            print(f"Could not reach KoboToolbox: {e!r}", file=sys.stderr)
        case _:
            print(f"Unexpected response from KoboToolbox: {e}", file=sys.stderr)
    return 1


async def template_cmd(_config: Config, _client: BaseKoboClient, _args) -> int:
    """
    Command to print the spreadsheet template, with example rows, as TSV.
    """
    print(template_tsv())
    return 0


async def export_cmd(config: Config, client: BaseKoboClient, args) -> int:
    """
    Command to print the current permissions of an asset as TSV, one row per user, optionally leaving out the owner.
    """

    req = ExportRequest(
        token=_token(config, args),
        base_url=getattr(args, "base_url", ""),
        asset_uid=getattr(args, "asset_uid", ""),
        owner=getattr(args, "owner", None),
    )
    if missing := req.missing_fields():
        return _missing_exit(missing)

    try:
        rows = await export_permission_rows(client, req)
    except (KoboRemoteError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        return _remote_error_exit(e)

    print(rows_to_tsv(rows))
    return 0


async def update_cmd(config: Config, client: BaseKoboClient, args) -> int:
    """
    Command to replace the permissions of every user listed in a TSV file, keeping other users' permissions as they
    are. With --dry-run, the replacement assignment list is printed as JSON instead of being submitted.
    """

    try:
        users = parse_tsv(Path(args.file).read_text(encoding="utf-8"))
    except (OSError, TSVFormatError) as e:
        print(f"Could not read permissions from {args.file}: {e}", file=sys.stderr)
        return 1

    req = UpdateRequest(
        token=_token(config, args),
        base_url=getattr(args, "base_url", ""),
        asset_uid=getattr(args, "asset_uid", ""),
        owner=getattr(args, "owner", ""),
        users=users,
    )
    if missing := req.missing_fields():
        return _missing_exit(missing)

    logger = get_logger(config)

    try:
        if getattr(args, "dry_run", False):
            replacement = await plan_permission_update(client, req, logger)
            print(json.dumps([a.model_dump(mode="json", exclude_none=True) for a in replacement], indent=2))
            return 0

        res = await update_permissions(client, req, logger)
    except (KoboRemoteError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        return _remote_error_exit(e)

    print(json_model_dump_kwargs(res, indent=2))
    return 0 if res.success else 1


TOKEN_KWARGS = dict(type=str, default=None, help="KoboToolbox API token (defaults to the KOBO_TOKEN setting).")


async def main(args: list[str] | None, client: BaseKoboClient | None = None) -> int:
    cfg = get_config()
    args = args if args is not None else sys.argv[1:]
    client = client or get_kobo_client(cfg, get_logger(cfg))

    parser = argparse.ArgumentParser(description="CLI for bulk-editing KoboToolbox asset permissions as TSV.")

    parser.add_argument("--version", "-v", action="version", version=__version__)

    subparsers = parser.add_subparsers()

    # template ---------------------------------------------------------------------------------------------------------
    t_sub = subparsers.add_parser("template", help="Prints the permissions spreadsheet template.")
    t_sub.set_defaults(func=template_cmd)
    # ------------------------------------------------------------------------------------------------------------------

    # export -----------------------------------------------------------------------------------------------------------
    e_sub = subparsers.add_parser("export", help="Prints the current permissions of an asset as TSV.")
    e_sub.set_defaults(func=export_cmd)
    e_sub.add_argument("base_url", type=str, help="KoboToolbox base URL, e.g. https://kf.kobotoolbox.org")
    e_sub.add_argument("asset_uid", type=str, help="Asset UID")
    e_sub.add_argument("--owner", type=str, default=None, help="Owner username to leave out of the export.")
    e_sub.add_argument("--token", **TOKEN_KWARGS)
    # ------------------------------------------------------------------------------------------------------------------

    # update -----------------------------------------------------------------------------------------------------------
    u_sub = subparsers.add_parser("update", help="Replaces the permissions of the users listed in a TSV file.")
    u_sub.set_defaults(func=update_cmd)
    u_sub.add_argument("base_url", type=str, help="KoboToolbox base URL, e.g. https://kf.kobotoolbox.org")
    u_sub.add_argument("asset_uid", type=str, help="Asset UID")
    u_sub.add_argument("owner", type=str, help="Owner username; the owner's own permissions are never submitted.")
    u_sub.add_argument("file", type=str, help="Path to a TSV file in the template format.")
    u_sub.add_argument("--token", **TOKEN_KWARGS)
    u_sub.add_argument("--dry-run", action="store_true", help="Print the replacement assignments without submitting.")
    # ------------------------------------------------------------------------------------------------------------------

    p_args = parser.parse_args(args)
    if not getattr(p_args, "func", None):
        p_args = parser.parse_args(
            (
                *args,
                "--help",
            )
        )

    return await p_args.func(cfg, client, p_args)


def main_sync(args: list[str] | None = None):  # pragma: no cover
    return asyncio.run(main(args))


if __name__ == "__main__":  # pragma: no cover
    exit(main_sync(sys.argv[1:]))
