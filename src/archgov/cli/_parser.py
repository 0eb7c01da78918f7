"""Argparse parser definition for the archgov CLI."""

from __future__ import annotations

import argparse

from archgov.cli._helpers import _default_db
from archgov.defaults import QUERY_LIMIT_SMALL
from archgov.models import ComponentKind, DecisionStatus, Severity


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archgov",
        description="Architecture decision governance and component risk scoring",
    )
    parser.add_argument("--db", default=_default_db(), help="SQLite database path")
    parser.add_argument("--actor", default="system", help="Actor identity for the activity log")
    sub = parser.add_subparsers(dest="command")

    _register_decision_commands(sub)
    _register_component_commands(sub)
    _register_risk_commands(sub)
    _register_server_commands(sub)

    return parser


def _register_decision_commands(sub: argparse._SubParsersAction) -> None:
    decision_p = sub.add_parser("decision", help="Decision records and supersession")
    decision_sub = decision_p.add_subparsers(dest="decision_cmd")

    p = decision_sub.add_parser("create", help="Create a decision record")
    p.add_argument("--file", help="JSON file with the record (flags override its fields)")
    p.add_argument("--project-id")
    p.add_argument("--title")
    p.add_argument("--context")
    p.add_argument("--decision")
    p.add_argument("--rationale")
    p.add_argument("--consequences")
    p.add_argument("--status", choices=[s.value for s in DecisionStatus if s != DecisionStatus.SUPERSEDED])
    p.add_argument("--tags", help="Comma-separated tags")
    p.add_argument("--components", help="Comma-separated component ids to link")

    p = decision_sub.add_parser("update", help="Patch a decision record")
    p.add_argument("--decision-id", required=True)
    p.add_argument("--title")
    p.add_argument("--context")
    p.add_argument("--decision")
    p.add_argument("--rationale")
    p.add_argument("--consequences")
    p.add_argument("--status", choices=[s.value for s in DecisionStatus])
    p.add_argument("--tags", help="Comma-separated tags (replaces the current set)")

    p = decision_sub.add_parser("show", help="Show one decision record")
    p.add_argument("--decision-id", required=True)

    p = decision_sub.add_parser("list", help="List a project's decisions, newest first")
    p.add_argument("--project-id", required=True)
    p.add_argument("--status", choices=[s.value for s in DecisionStatus])
    p.add_argument("--component-id", help="Only decisions linked to this component")

    p = decision_sub.add_parser("supersede", help="Replace OLD with NEW")
    p.add_argument("--old-id", required=True)
    p.add_argument("--new-id", required=True)

    p = decision_sub.add_parser("revert", help="Undo the supersession of a decision")
    p.add_argument("--decision-id", required=True)

    p = decision_sub.add_parser("chain", help="Supersession chain, oldest first")
    p.add_argument("--decision-id", required=True)

    p = decision_sub.add_parser("delete", help="Delete an unreferenced decision")
    p.add_argument("--decision-id", required=True)

    p = decision_sub.add_parser("link", help="Link a decision to a component")
    p.add_argument("--decision-id", required=True)
    p.add_argument("--component-id", required=True)

    p = decision_sub.add_parser("unlink", help="Remove a decision/component link")
    p.add_argument("--decision-id", required=True)
    p.add_argument("--component-id", required=True)

    p = decision_sub.add_parser("activity", help="Recent activity events of a project")
    p.add_argument("--project-id", required=True)
    p.add_argument("--entity-id")
    p.add_argument("--limit", type=int, default=QUERY_LIMIT_SMALL)


def _register_component_commands(sub: argparse._SubParsersAction) -> None:
    component_p = sub.add_parser("component", help="Architecture map components")
    component_sub = component_p.add_subparsers(dest="component_cmd")

    p = component_sub.add_parser("add", help="Create or rename a component")
    p.add_argument("--project-id", required=True)
    p.add_argument("--component-id", required=True)
    p.add_argument("--name", required=True)
    p.add_argument("--kind", choices=[k.value for k in ComponentKind], default=ComponentKind.SERVICE.value)

    p = component_sub.add_parser("list", help="List a project's components")
    p.add_argument("--project-id", required=True)


def _register_risk_commands(sub: argparse._SubParsersAction) -> None:
    risk_p = sub.add_parser("risk", help="Component risk scoring")
    risk_sub = risk_p.add_subparsers(dest="risk_cmd")

    p = risk_sub.add_parser("component", help="Risk metrics for one component")
    p.add_argument("--component-id", required=True)

    p = risk_sub.add_parser("project", help="Risk metrics for every component of a project")
    p.add_argument("--project-id", required=True)

    p = risk_sub.add_parser("high", help="Components at or above a severity")
    p.add_argument("--project-id", required=True)
    p.add_argument("--min-severity", choices=[s.value for s in Severity], default=Severity.MEDIUM.value)

    p = risk_sub.add_parser("summary", help="Project risk summary")
    p.add_argument("--project-id", required=True)

    p = risk_sub.add_parser("policy-set", help="Set a project's risk weights and thresholds")
    p.add_argument("--project-id", required=True)
    p.add_argument("--commit-weight", type=float)
    p.add_argument("--volatility-weight", type=float)
    p.add_argument("--discussion-weight", type=float)
    p.add_argument("--thresholds", help="Comma-separated medium,high,critical thresholds")

    p = risk_sub.add_parser("policy-get", help="Show a project's risk policy")
    p.add_argument("--project-id", required=True)


def _register_server_commands(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("serve", help="Start the HTTP API server")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=9876)
