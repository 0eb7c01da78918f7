"""CLI for archgov: grouped subcommands.

Commands:
  archgov decision {create, update, show, list, supersede, revert, chain,
                    delete, link, unlink, activity}
  archgov component {add, list}
  archgov risk {component, project, high, summary, policy-set, policy-get}
  archgov serve
"""

from __future__ import annotations

import sys

from archgov.cli._helpers import _out  # noqa: F401 (re-exported for tests)
from archgov.cli._parser import build_parser
from archgov.cli.admin import cmd_serve
from archgov.cli.decision_cmds import (
    cmd_component_add,
    cmd_component_list,
    cmd_decision_activity,
    cmd_decision_chain,
    cmd_decision_create,
    cmd_decision_delete,
    cmd_decision_link,
    cmd_decision_list,
    cmd_decision_revert,
    cmd_decision_show,
    cmd_decision_supersede,
    cmd_decision_unlink,
    cmd_decision_update,
)
from archgov.cli.risk_cmds import (
    cmd_risk_component,
    cmd_risk_high,
    cmd_risk_policy_get,
    cmd_risk_policy_set,
    cmd_risk_project,
    cmd_risk_summary,
)


# ===================================================================
# Dispatch
# ===================================================================

_DISPATCH = {
    ("decision", "create"): cmd_decision_create,
    ("decision", "update"): cmd_decision_update,
    ("decision", "show"): cmd_decision_show,
    ("decision", "list"): cmd_decision_list,
    ("decision", "supersede"): cmd_decision_supersede,
    ("decision", "revert"): cmd_decision_revert,
    ("decision", "chain"): cmd_decision_chain,
    ("decision", "delete"): cmd_decision_delete,
    ("decision", "link"): cmd_decision_link,
    ("decision", "unlink"): cmd_decision_unlink,
    ("decision", "activity"): cmd_decision_activity,
    ("component", "add"): cmd_component_add,
    ("component", "list"): cmd_component_list,
    ("risk", "component"): cmd_risk_component,
    ("risk", "project"): cmd_risk_project,
    ("risk", "high"): cmd_risk_high,
    ("risk", "summary"): cmd_risk_summary,
    ("risk", "policy-set"): cmd_risk_policy_set,
    ("risk", "policy-get"): cmd_risk_policy_get,
    ("serve", None): cmd_serve,
}

# Map subcmd attr names to the dispatch key
_SUBCMD_ATTR = {
    "decision": "decision_cmd",
    "component": "component_cmd",
    "risk": "risk_cmd",
}


def main(argv: list[str] | None = None) -> int:
    from archgov import event_log as el

    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if not args.command:
        parser.print_help()
        return 1

    # Resolve dispatch key
    subcmd_attr = _SUBCMD_ATTR.get(args.command)
    subcmd = getattr(args, subcmd_attr, None) if subcmd_attr else None
    handler = _DISPATCH.get((args.command, subcmd))
    if handler is None:
        parser.print_help()
        return 1

    # serve opens its own store inside create_app
    if args.command != "serve":
        el.init(args.db)
    try:
        return handler(args)
    finally:
        if args.command != "serve":
            el.close()
