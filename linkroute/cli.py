"""
Command-line interface for linkroute.

Notes
-----
The CLI is intentionally thin. It parses arguments, wires a RoutingService
from on-disk state and delegates to engine modules.

Safety posture
--------------
- ``route`` only previews a decision: nothing is launched or recorded.
- ``open`` is the only command that launches a destination.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Sequence

from routing_engine.data_models import MatchType, NotificationSettings, PortRange, Rule
from routing_engine.dispatch import Decision, FallbackRoute, NoDestination, RuleMatch
from routing_engine.errors import RoutingEngineError
from routing_engine.logging_setup import LOG_FILE_NAME, LOG_LEVEL_ENV, close_log_file, configure_logging
from routing_engine.matcher import matches, parse_url, wildcard_to_regex
from routing_engine.paths import resolve_state_paths
from routing_engine.rule_store.rules import validate_rule_against_catalog
from routing_engine.service import RoutingService, open_routing_service
from routing_engine.settings import LOG_LEVELS, load_engine_settings


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--data-root",
        default=None,
        help="Override linkroute data root (primarily for testing). If omitted, defaults are used.",
    )


def _port_range(text: str) -> PortRange:
    parsed = PortRange.parse(text)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid port or port range: {text!r} (expected 1-65535)")
    return parsed


def _add_rule_fields(parser: argparse.ArgumentParser, *, required: bool) -> None:
    parser.add_argument("--pattern", required=required, help="Pattern text")
    parser.add_argument(
        "--match-type",
        choices=[m.value for m in MatchType],
        default=None if not required else MatchType.DOMAIN.value,
        help="How the pattern is matched (default: domain)",
    )
    parser.add_argument("--destination", required=required, help="Destination id")
    parser.add_argument("--profile", default=None, help="Profile id of the destination")
    parser.add_argument("--port", type=_port_range, default=None, help="Port or range, e.g. 8080 or 8000-8999")
    parser.add_argument("--no-check", action="store_true", help="Skip checking the destination is installed")


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured parser.
    """
    parser = argparse.ArgumentParser(prog="linkroute", description="Rule-based URL router")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None, help="Log level")
    sub = parser.add_subparsers(dest="command", required=True)

    route_p = sub.add_parser("route", help="Show where a URL would open (nothing is launched)")
    route_p.add_argument("url", help="URL to route")
    _add_common(route_p)

    open_p = sub.add_parser("open", help="Route a URL and open it in the chosen destination")
    open_p.add_argument("url", help="URL to open")
    _add_common(open_p)

    dest_p = sub.add_parser("destinations", help="List detected destinations and their profiles")
    _add_common(dest_p)

    rules_p = sub.add_parser("rules", help="List and edit routing rules")
    rules_sub = rules_p.add_subparsers(dest="rules_command", required=True)

    list_p = rules_sub.add_parser("list", help="List rules in evaluation order")
    _add_common(list_p)

    add_p = rules_sub.add_parser("add", help="Append a rule")
    _add_rule_fields(add_p, required=True)
    add_p.add_argument("--disabled", action="store_true", help="Create the rule disabled")
    _add_common(add_p)

    update_p = rules_sub.add_parser("update", help="Edit an existing rule")
    update_p.add_argument("rule_id", help="Rule id")
    _add_rule_fields(update_p, required=False)
    update_p.add_argument("--clear-profile", action="store_true", help="Remove the profile")
    update_p.add_argument("--clear-port", action="store_true", help="Remove the port filter")
    update_p.add_argument("--enabled", action=argparse.BooleanOptionalAction, default=None)
    _add_common(update_p)

    delete_p = rules_sub.add_parser("delete", help="Delete a rule")
    delete_p.add_argument("rule_id", help="Rule id")
    _add_common(delete_p)

    move_p = rules_sub.add_parser("move", help="Move rules to a new position")
    move_p.add_argument("rule_ids", nargs="+", help="Rule ids to move, in order")
    move_p.add_argument("--to", type=int, required=True, help="Insertion position (0 = top)")
    _add_common(move_p)

    test_p = rules_sub.add_parser("test", help="Show which rules match a URL")
    test_p.add_argument("url", help="URL to test")
    _add_common(test_p)

    toggle_p = sub.add_parser("toggle", help="Flip the global routing switch")
    _add_common(toggle_p)

    fallback_p = sub.add_parser("fallback", help="Show, set or clear the fallback destination")
    fallback_p.add_argument("destination", nargs="?", default=None, help="Destination id")
    fallback_p.add_argument("--clear", action="store_true", help="Clear the fallback")
    _add_common(fallback_p)

    recent_p = sub.add_parser("recent", help="Show recently routed URLs")
    recent_p.add_argument("--clear", action="store_true", help="Forget recent routes")
    _add_common(recent_p)

    notif_p = sub.add_parser("notifications", help="Show or change notification settings")
    notif_p.add_argument("--banner", action=argparse.BooleanOptionalAction, default=None)
    notif_p.add_argument("--flash", action=argparse.BooleanOptionalAction, default=None)
    notif_p.add_argument("--track-recent", action=argparse.BooleanOptionalAction, default=None)
    notif_p.add_argument("--sound", action=argparse.BooleanOptionalAction, default=None)
    notif_p.add_argument("--sound-name", default=None, help="Sound identifier")
    notif_p.add_argument("--max-recent", type=int, default=None, help="Recent routes kept (5-50)")
    _add_common(notif_p)

    return parser


def describe_decision(decision: Decision) -> str:
    """Render a decision as a single line."""
    if isinstance(decision, NoDestination):
        return f"no destination ({decision.reason})"
    if isinstance(decision, RuleMatch):
        text = f"rule {decision.rule.id} -> {decision.destination.name} [{decision.destination.id}]"
        if decision.profile is not None:
            text += f" profile {decision.profile.name!r}"
        return text
    if isinstance(decision, FallbackRoute):
        return f"fallback -> {decision.destination.name} [{decision.destination.id}]"
    label = "last resort" if decision.last_resort else "system default"
    return f"{label} -> {decision.destination.name} [{decision.destination.id}]"


def _format_rule(rule: Rule) -> str:
    flags = [rule.match_type.value]
    if rule.port_range is not None:
        flags.append(f"port {rule.port_range.display}")
    if rule.profile_id is not None:
        flags.append(f"profile {rule.profile_id}")
    if not rule.enabled:
        flags.append("disabled")
    return f"{rule.priority:>3}  {rule.id}  {rule.pattern!r} -> {rule.destination_id}  ({', '.join(flags)})"


def _format_settings(settings: NotificationSettings) -> str:
    return "\n".join(f"{key}: {value}" for key, value in settings.to_json().items())


def _cmd_rules(service: RoutingService, args: argparse.Namespace) -> int:
    store = service.store
    if args.rules_command == "list":
        rules = store.snapshot().rules
        if not rules:
            print("No rules.")
        for rule in rules:
            print(_format_rule(rule))
        return 0

    if args.rules_command == "add":
        rule = Rule.new(
            pattern=args.pattern,
            match_type=MatchType(args.match_type),
            destination_id=args.destination,
            profile_id=args.profile,
            port_range=args.port,
            enabled=not args.disabled,
        )
        if not args.no_check:
            validate_rule_against_catalog(rule, service.catalog)
        state = service.edit(lambda s: s.add(rule))
        added = state.rule(rule.id)
        print(_format_rule(added) if added is not None else rule.id)
        return 0

    if args.rules_command == "update":
        current = store.rule(args.rule_id)
        if current is None:
            print(f"ERROR: Unknown rule id: {args.rule_id}")
            return 2
        updated = Rule(
            id=current.id,
            pattern=args.pattern if args.pattern is not None else current.pattern,
            match_type=MatchType(args.match_type) if args.match_type else current.match_type,
            destination_id=args.destination or current.destination_id,
            profile_id=None if args.clear_profile else (args.profile or current.profile_id),
            port_range=None if args.clear_port else (args.port or current.port_range),
            enabled=current.enabled if args.enabled is None else args.enabled,
            priority=current.priority,
        )
        if not args.no_check:
            validate_rule_against_catalog(updated, service.catalog)
        service.edit(lambda s: s.update(updated))
        print(_format_rule(updated))
        return 0

    if args.rules_command == "delete":
        service.edit(lambda s: s.delete(args.rule_id))
        return 0

    if args.rules_command == "move":
        state = service.edit(lambda s: s.move(args.rule_ids, args.to))
        for rule in state.rules:
            print(_format_rule(rule))
        return 0

    # test
    parsed = parse_url(args.url)
    if parsed is None:
        print(f"ERROR: Not a routable URL: {args.url!r}")
        return 2
    for rule in store.snapshot().rules:
        verdict = "match" if matches(parsed, rule) else "-"
        extra = f"  regex {wildcard_to_regex(rule.pattern)}" if rule.match_type is MatchType.WILDCARD else ""
        print(f"{verdict:>5}  {_format_rule(rule)}{extra}")
    return 0


def _cmd_notifications(service: RoutingService, args: argparse.Namespace) -> int:
    current = service.store.snapshot().notification_settings
    changes = {
        "show_banner": args.banner,
        "flash_icon": args.flash,
        "track_recent": args.track_recent,
        "play_sound": args.sound,
        "sound_name": args.sound_name,
        "max_recent_urls": args.max_recent,
    }
    requested = {k: v for k, v in changes.items() if v is not None}
    if requested:
        values = {
            "show_banner": current.show_banner,
            "flash_icon": current.flash_icon,
            "track_recent": current.track_recent,
            "play_sound": current.play_sound,
            "sound_name": current.sound_name,
            "max_recent_urls": current.max_recent_urls,
        }
        values.update(requested)
        new_settings = NotificationSettings(**values)
        current = service.edit(lambda s: s.set_notification_settings(new_settings)).notification_settings
    print(_format_settings(current))
    return 0


def _dispatch(service: RoutingService, args: argparse.Namespace) -> int:
    if args.command == "route":
        print(describe_decision(service.preview(args.url)))
        return 0

    if args.command == "open":
        decision = service.open_url(args.url)
        print(describe_decision(decision))
        return 0 if not isinstance(decision, NoDestination) else 1

    if args.command == "destinations":
        snapshot = service.catalog.snapshot()
        if not snapshot.destinations:
            print("No destinations detected.")
        for destination in snapshot.destinations:
            marker = "*" if destination.id == snapshot.default_id else " "
            print(f"{marker} {destination.name} [{destination.id}] {destination.executable_path}")
            for profile in destination.profiles:
                print(f"      profile {profile.name!r} [{profile.id}]")
        return 0

    if args.command == "rules":
        return _cmd_rules(service, args)

    if args.command == "toggle":
        state = service.edit(lambda s: s.toggle_enabled())
        print("Routing enabled" if state.routing_enabled else "Routing disabled")
        return 0

    if args.command == "fallback":
        if args.clear:
            service.edit(lambda s: s.set_fallback(None))
        elif args.destination is not None:
            if service.catalog.destination(args.destination) is None:
                print(f"ERROR: Unknown destination: {args.destination}")
                return 2
            service.edit(lambda s: s.set_fallback(args.destination))
        print(service.store.snapshot().fallback_destination_id or "(none)")
        return 0

    if args.command == "recent":
        if args.clear:
            service.edit(lambda s: s.clear_recent_routes())
            return 0
        for recent in service.store.snapshot().recent_routes:
            print(f"{recent.timestamp.isoformat()}  {recent.display_url} -> {recent.destination_name}")
        return 0

    if args.command == "notifications":
        return _cmd_notifications(service, args)

    return 2


def main(argv: Sequence[str] | None = None) -> int:
    """
    CLI entry point.

    Parameters
    ----------
    argv:
        Optional argument vector. If None, argparse uses sys.argv.

    Returns
    -------
    int
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    data_root = Path(args.data_root) if getattr(args, "data_root", None) else None
    settings = load_engine_settings(data_root=data_root)
    log_handler = configure_logging(
        args.log_level or os.getenv(LOG_LEVEL_ENV) or settings.log_level,
        log_file=resolve_state_paths(data_root).logs_root / LOG_FILE_NAME,
    )

    try:
        service = open_routing_service(data_root, settings=settings)
        return _dispatch(service, args)
    except (RoutingEngineError, ValueError) as exc:
        print(f"ERROR: {exc}")
        return 2
    finally:
        close_log_file(log_handler)


if __name__ == "__main__":
    raise SystemExit(main())
