#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
My Location BASE (SQLite, local only)

Commands:
  init                Create the locations / preference / operation_log tables
  capture             Capture the current position and append it to the log
  list                Print the capture history (oldest first)
  dark-mode           Show, set or toggle the dark-mode preference
  permission          Record the foreground location permission decision
  serve               Run the local HTTP API (uvicorn, loopback only)

Notes:
- `capture --lat/--lon` uses a one-off reading instead of the configured source.
- Without a stored permission decision, `capture` asks on the console.
"""

import argparse
import asyncio
import logging
import sys

from locbase.config import load_config
from locbase.domain.coords import format_record
from locbase.errors import PreferenceError
from locbase.logs import ensure_log_schema
from locbase.providers.location import StaticLocationProvider
from locbase.providers.permission import console_prompt, fixed_prompt
from locbase.services.bootstrap import build_controller


def _controller(cfg, ask: bool = True):
    prompt = fixed_prompt(True) if cfg.auto_grant_location else (console_prompt() if ask else fixed_prompt(False))
    controller = build_controller(cfg, prompt=prompt)
    controller.on_alert = lambda a: print(f"[{a.title}] {a.message}", file=sys.stderr)
    return controller


async def _with_store(controller, fn):
    ensure_log_schema(controller.store.db_path)
    async with controller.store:
        await controller.load()
        return await fn(controller)


# ---------------- Commands ----------------

def cmd_init(args):
    cfg = load_config()
    controller = _controller(cfg, ask=False)

    async def _noop(c):
        return None

    asyncio.run(_with_store(controller, _noop))
    print(f"DB initialized at {controller.store.db_path}.")
    return 0


def cmd_capture(args):
    cfg = load_config()
    controller = _controller(cfg)
    if args.lat is not None and args.lon is not None:
        controller.location_provider = StaticLocationProvider(args.lat, args.lon)

    async def _capture(c):
        return await c.capture()

    outcome = asyncio.run(_with_store(controller, _capture))
    if not outcome.ok:
        return 1
    print(f"Location saved, id={outcome.record_id}")
    return 0


def cmd_list(args):
    cfg = load_config()
    controller = _controller(cfg, ask=False)

    async def _list(c):
        return c.locations

    locations = asyncio.run(_with_store(controller, _list))
    if locations is None:
        return 1
    if not locations:
        print("No locations recorded yet.")
        return 0
    for rec in locations:
        print(format_record(rec))
    return 0


def cmd_dark_mode(args):
    cfg = load_config()
    controller = _controller(cfg, ask=False)

    async def _dark(c):
        if args.action == "toggle":
            return await c.toggle_dark_mode()
        if args.action in ("on", "off"):
            wanted = args.action == "on"
            if c.dark_mode_enabled != wanted:
                return await c.toggle_dark_mode()
        return c.dark_mode_enabled

    enabled = asyncio.run(_with_store(controller, _dark))
    print(f"Dark mode: {'on' if enabled else 'off'}")
    return 0


def cmd_permission(args):
    cfg = load_config()
    controller = _controller(cfg, ask=False)
    try:
        controller.preferences.ensure_schema()
        status = controller.permission_gate.set_decision(args.decision == "grant")
    except PreferenceError as e:
        print(f"[Location permission] could not store decision: {e}", file=sys.stderr)
        return 1
    print(f"Location permission: {status.value}")
    return 0


def cmd_serve(args):
    import uvicorn
    uvicorn.run("locbase.api:app", host=args.host, port=args.port)
    return 0


def main(argv=None):
    p = argparse.ArgumentParser(description="My Location BASE")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("init")
    s.set_defaults(func=cmd_init)

    s = sub.add_parser("capture")
    s.add_argument("--lat", type=float)
    s.add_argument("--lon", type=float)
    s.set_defaults(func=cmd_capture)

    s = sub.add_parser("list")
    s.set_defaults(func=cmd_list)

    s = sub.add_parser("dark-mode")
    s.add_argument("action", nargs="?", choices=["on", "off", "toggle", "show"], default="show")
    s.set_defaults(func=cmd_dark_mode)

    s = sub.add_parser("permission")
    s.add_argument("decision", choices=["grant", "deny"])
    s.set_defaults(func=cmd_permission)

    s = sub.add_parser("serve")
    s.add_argument("--host", default="127.0.0.1")
    s.add_argument("--port", type=int, default=8000)
    s.set_defaults(func=cmd_serve)

    args = p.parse_args(argv)
    logging.basicConfig(level=load_config().log_level, format="%(levelname)s %(name)s %(message)s")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
