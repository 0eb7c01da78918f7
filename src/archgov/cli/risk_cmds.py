"""CLI commands: component risk, project ranking, risk policy."""

from __future__ import annotations

import argparse
from typing import Any

from archgov.cli._helpers import _csv, _out, _run


def _service():
    from archgov.service import GovernanceService
    return GovernanceService()


def cmd_risk_component(args: argparse.Namespace) -> int:
    return _run(lambda: _service().calculate_component_risk(args.component_id).to_dict())


def cmd_risk_project(args: argparse.Namespace) -> int:
    return _run(
        lambda: [m.to_dict() for m in _service().calculate_project_risks(args.project_id)]
    )


def cmd_risk_high(args: argparse.Namespace) -> int:
    return _run(lambda: [
        m.to_dict()
        for m in _service().get_high_risk_components(args.project_id, args.min_severity)
    ])


def cmd_risk_summary(args: argparse.Namespace) -> int:
    return _run(lambda: _service().get_project_risk_summary(args.project_id))


def cmd_risk_policy_set(args: argparse.Namespace) -> int:
    data: dict[str, Any] = {}
    if args.commit_weight is not None:
        data["commitWeight"] = args.commit_weight
    if args.volatility_weight is not None:
        data["volatilityWeight"] = args.volatility_weight
    if args.discussion_weight is not None:
        data["discussionWeight"] = args.discussion_weight
    if args.thresholds:
        try:
            data["thresholds"] = [float(t) for t in _csv(args.thresholds)]
        except ValueError:
            return _out({"error": f"Invalid thresholds: {args.thresholds}"})
    if not data:
        return _out({"error": "Nothing to set: pass weights and/or --thresholds"})
    return _run(lambda: _service().set_risk_policy(args.project_id, data, actor=args.actor))


def cmd_risk_policy_get(args: argparse.Namespace) -> int:
    return _run(lambda: _service().get_risk_policy(args.project_id))
