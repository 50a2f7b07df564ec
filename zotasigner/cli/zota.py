"""
zotasigner command line entry point.

Usage examples:
    zota profiles add stage --merchant-id M1 --secret S1 --api-base api.zotapay-stage.com
    zota profiles use stage
    zota sign --method POST --url https://api.zotapay-stage.com/api/v1/deposit/request/1050/ --body '{...}'
    zota proxy --port 8080
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from pydantic import ValidationError

from zotasigner import __version__
from zotasigner.base.config import get_config, setup_logging
from zotasigner.base.exceptions import ProfileError
from zotasigner.controller import ZotaController
from zotasigner.message.request import HttpRequest
from zotasigner.profile.models import ZotaProfile
from zotasigner.profile.persistence import JsonFileStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zota", description="Zota request signer")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--store", help="Project store file (default: $ZOTA_DATA_DIR/project.json)")
    sub = parser.add_subparsers(dest="command", required=True)

    profiles = sub.add_parser("profiles", help="Manage merchant profiles")
    psub = profiles.add_subparsers(dest="action", required=True)
    psub.add_parser("list", help="List profiles")
    add = psub.add_parser("add", help="Add or replace a profile")
    add.add_argument("name")
    add.add_argument("--merchant-id", default="")
    add.add_argument("--secret", default="")
    add.add_argument("--api-base", default="")
    add.add_argument("--endpoint-id", default=None)
    remove = psub.add_parser("remove", help="Remove a profile")
    remove.add_argument("name")
    use = psub.add_parser("use", help="Make a profile active")
    use.add_argument("name")

    sign = sub.add_parser("sign", help="Sign a single request and print it")
    sign.add_argument("--method", default="GET")
    sign.add_argument("--url", required=True)
    sign.add_argument("--body", default="")
    sign.add_argument("--header", action="append", default=[], metavar="NAME:VALUE")
    sign.add_argument("--profile", help="Re-sign with this profile (retargets host and ids)")
    sign.add_argument("--passive", action="store_true", help="Run the interception pass instead of an explicit re-sign")

    proxy = sub.add_parser("proxy", help="Run the signing proxy")
    proxy.add_argument("--host", default=None)
    proxy.add_argument("--port", type=int, default=None)

    return parser


def _headers(raw: List[str]) -> dict:
    headers = {}
    for item in raw:
        name, sep, value = item.partition(":")
        if not sep:
            raise SystemExit(f"Invalid header (expected NAME:VALUE): {item}")
        headers[name.strip()] = value.strip()
    return headers


def _cmd_profiles(controller: ZotaController, args) -> int:
    if args.action == "list":
        active = controller.active_profile()
        for p in controller.all_profiles():
            flag = "*" if active is not None and p.name == active.name else " "
            endpoint = p.default_endpoint_id or "-"
            print(f"{flag} {p.name}\tmerchant={p.merchant_id or '-'}\tendpoint={endpoint}\tapi={p.api_base or '-'}")
        return 0
    if args.action == "add":
        try:
            profile = ZotaProfile(
                name=args.name,
                merchant_id=args.merchant_id,
                merchant_secret_key=args.secret,
                api_base=args.api_base,
                default_endpoint_id=args.endpoint_id,
            )
            controller.add_or_update_profile(profile)
        except (ValidationError, ProfileError) as e:
            print(f"Invalid profile: {e}", file=sys.stderr)
            return 1
        print(f"Saved profile {profile.name}")
        return 0
    if args.action == "remove":
        if not controller.remove_profile(args.name):
            print(f"No such profile: {args.name}", file=sys.stderr)
            return 1
        print(f"Removed profile {args.name}")
        return 0
    if args.action == "use":
        if not controller.select_active_profile(args.name):
            print(f"No such profile: {args.name}", file=sys.stderr)
            return 1
        print(f"Active profile: {args.name}")
        return 0
    return 2


def _cmd_sign(controller: ZotaController, args) -> int:
    request = HttpRequest.from_url(args.method, args.url, headers=_headers(args.header), body=args.body)
    if args.passive:
        result = controller.signer.sign_if_zota(request)
    elif args.profile:
        try:
            result = controller.resign_with_profile(request, args.profile)
        except ProfileError as e:
            print(str(e), file=sys.stderr)
            return 1
    else:
        result = controller.signer.sign(request)

    out = result.request
    print(f"{out.method} {out.url}")
    for name, value in out.headers:
        print(f"{name}: {value}")
    if out.body:
        print()
        print(out.body)
    if result.annotation is not None:
        print(f"\n# [{result.annotation.severity.value}] {result.annotation.note}", file=sys.stderr)
    return 0


def _cmd_proxy(controller: ZotaController, args) -> int:
    from zotasigner.intercept.proxy import ZotaInterceptor

    cfg = get_config().proxy
    interceptor = ZotaInterceptor(
        controller,
        host=args.host or cfg.listen_host,
        port=args.port if args.port is not None else cfg.listen_port,
    )

    async def _run():
        await interceptor.start()
        await interceptor.wait()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        interceptor.stop()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config()
    setup_logging(config)

    store = JsonFileStore(args.store or config.storage.store_path)
    controller = ZotaController(store, config.signing)

    if args.command == "profiles":
        return _cmd_profiles(controller, args)
    if args.command == "sign":
        return _cmd_sign(controller, args)
    if args.command == "proxy":
        return _cmd_proxy(controller, args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
