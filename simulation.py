#!/usr/bin/env python3
"""Engagement Engine - End-to-End Simulation.

Runs three scenarios against in-memory ledger, escrow, NDA and assessment
backends, with every event appended to an audit log:

    Scenario A: Escrow-gated acceptance
        - Student applies to a listing that requires a deposit
        - Partner tries to accept -> blocked by the escrow gate
        - Admin confirms the deposit -> partner accepts

    Scenario B: Full lifecycle
        - apply -> accept -> mark-completed -> both parties review
        - No assessment until the partner submits one

    Scenario C: Racing acceptances
        - Two concurrent accept calls -> exactly one succeeds

Usage:
    # SQLite in-memory audit log (no Docker needed):
    uv run python simulation.py --sqlite

    # PostgreSQL audit log (docker compose up -d):
    uv run python simulation.py

    # Run a specific scenario:
    uv run python simulation.py --sqlite --scenario B
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Any

# ---------------------------------------------------------------------------
# Configure structured logging BEFORE importing app modules
# ---------------------------------------------------------------------------
from engagement_engine.logging_config import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False)
logger = get_logger("simulation")

from engagement_engine.bootstrap import EngagementEngine, build_engine  # noqa: E402
from engagement_engine.config import get_settings  # noqa: E402
from engagement_engine.domain.exceptions import EngagementError  # noqa: E402
from engagement_engine.infrastructure.database.repositories import EventRepository  # noqa: E402
from engagement_engine.infrastructure.memory import InMemoryLedger  # noqa: E402

STUDENT = "student-ada"
PARTNER = "partner-acme"
ADMIN = "admin-ops"

# Module-level state
_sqlite_engine = None
_session_factory = None


# ---------------------------------------------------------------------------
# Database lifecycle helpers
# ---------------------------------------------------------------------------
async def init_database(use_sqlite: bool = False) -> None:
    """Initialize the audit log database and create tables."""
    global _sqlite_engine, _session_factory

    if use_sqlite:
        from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
        from sqlalchemy.pool import StaticPool

        from engagement_engine.infrastructure.database.orm_models import Base

        _sqlite_engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            echo=False,
            poolclass=StaticPool,
        )
        _session_factory = async_sessionmaker(
            bind=_sqlite_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        async with _sqlite_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database.sqlite_initialized")
    else:
        from engagement_engine.infrastructure.database.engine import get_session_factory, init_db

        await init_db()
        _session_factory = get_session_factory()


async def shutdown_database() -> None:
    """Close database connections."""
    global _sqlite_engine, _session_factory

    if _sqlite_engine is not None:
        await _sqlite_engine.dispose()
        _sqlite_engine = None
    else:
        from engagement_engine.infrastructure.database.engine import close_db

        await close_db()
    _session_factory = None


def new_engine() -> tuple[EngagementEngine, InMemoryLedger]:
    """Build an engine on fresh in-memory backends, logging to the audit DB."""
    settings = get_settings().model_copy(
        update={"simulate_external_services": True, "audit_log_enabled": True}
    )
    ledger = InMemoryLedger()
    engine = build_engine(settings, ledger=ledger, session_factory=_session_factory)
    return engine, ledger


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------
def banner(title: str) -> None:
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def section(title: str) -> None:
    print(f"\n--- {title} ---")


def print_result(label: str, result: Any) -> None:
    committed = "" if result.committed else " (replayed)"
    print(f"  {label:<32} {result.previous_state} -> {result.state}{committed}")


def print_error(label: str, exc: EngagementError) -> None:
    print(f"  {label:<32} REJECTED [{exc.code}] {exc.message}")


async def print_audit_trail(engine: EngagementEngine, engagement_id: str) -> None:
    """Print every audit event recorded for an engagement."""
    await engine.emitter.drain()
    section(f"Audit Trail ({engagement_id})")
    async with _session_factory() as session:
        rows = await EventRepository(session).get_by_engagement(engagement_id)
    for row in rows:
        print(f"  {row.event_type:<22} {row.name:<36} {row.before} -> {row.after}")


# ===========================================================================
# Scenario A: Escrow-gated acceptance
# ===========================================================================
async def scenario_a_escrow_gate() -> None:
    banner("SCENARIO A: Escrow-gated acceptance")
    engine, ledger = new_engine()
    ledger.create_engagement("E1", STUDENT, PARTNER, requires_deposit=True)

    try:
        section("Student applies")
        result = await engine.transitions.apply_transition("E1", "apply", "customer", STUDENT)
        print_result("apply", result)
        hold = await engine.escrow.get_status("E1")
        print(f"  escrow hold: {hold.status} (hold active: {hold.hold_active})")

        section("Partner accepts before the deposit")
        try:
            await engine.transitions.apply_transition("E1", "accept", "provider", PARTNER)
        except EngagementError as exc:
            print_error("accept", exc)

        section("Admin confirms the deposit")
        hold = await engine.escrow.confirm_deposit("E1", 50000, "wire", "", "admin", ADMIN)
        print(f"  escrow hold: {hold.status} (hold active: {hold.hold_active})")

        section("Partner accepts again")
        result = await engine.transitions.apply_transition("E1", "accept", "provider", PARTNER)
        print_result("accept", result)
        access = await engine.workspace.get_access("E1")
        print(f"  workspace unlocked: {access.unlocked}")

        await print_audit_trail(engine, "E1")
    finally:
        await engine.aclose()


# ===========================================================================
# Scenario B: Full lifecycle
# ===========================================================================
async def scenario_b_full_lifecycle() -> None:
    banner("SCENARIO B: Full lifecycle without gates")
    engine, ledger = new_engine()
    ledger.create_engagement("E2", STUDENT, PARTNER)

    try:
        section("Lifecycle")
        steps = [
            ("apply", "customer", STUDENT),
            ("accept", "provider", PARTNER),
            ("mark-completed", "provider", PARTNER),
            ("review", "customer", STUDENT),
            ("review", "provider", PARTNER),
        ]
        for name, role, actor_id in steps:
            result = await engine.transitions.apply_transition("E2", name, role, actor_id)
            print_result(f"{name} ({role})", result)

        section("Assessment")
        print(f"  before submission: {await engine.assessments.get_assessment('E2')}")
        assessment = await engine.assessments.submit_assessment(
            "E2",
            {"deliverable_quality": 5, "responsiveness": 4, "reliability": 5, "overall_rating": 5},
            "provider",
            PARTNER,
            strengths="Shipped ahead of schedule",
            recommend_for_future=True,
        )
        print(f"  overall average: {assessment.overall_average:.2f}")

        await print_audit_trail(engine, "E2")
    finally:
        await engine.aclose()


# ===========================================================================
# Scenario C: Racing acceptances
# ===========================================================================
async def scenario_c_concurrent_accept() -> None:
    banner("SCENARIO C: Two concurrent accepts")
    engine, ledger = new_engine()
    ledger.create_engagement("E3", STUDENT, PARTNER, last_transition="transition/apply")

    try:
        results = await asyncio.gather(
            engine.transitions.apply_transition("E3", "accept", "provider", PARTNER),
            engine.transitions.apply_transition("E3", "accept", "provider", PARTNER),
            return_exceptions=True,
        )
        for i, outcome in enumerate(results, start=1):
            if isinstance(outcome, EngagementError):
                print_error(f"accept #{i}", outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                print_result(f"accept #{i}", outcome)
        print(f"  ledger commits: {len(ledger.commits)}")

        await print_audit_trail(engine, "E3")
    finally:
        await engine.aclose()


# ===========================================================================
# Main
# ===========================================================================
SCENARIOS = {
    "A": scenario_a_escrow_gate,
    "B": scenario_b_full_lifecycle,
    "C": scenario_c_concurrent_accept,
}


async def run(scenario: str | None = None, use_sqlite: bool = False) -> None:
    """Run one scenario, or all of them in order."""
    await init_database(use_sqlite=use_sqlite)

    try:
        print("\n  ENGAGEMENT ENGINE - SIMULATION")
        print(f"  Audit log: {'SQLite (in-memory)' if use_sqlite else 'PostgreSQL'}")

        if scenario is None:
            for run_scenario in SCENARIOS.values():
                await run_scenario()
        elif scenario.upper() in SCENARIOS:
            await SCENARIOS[scenario.upper()]()
        else:
            print(f"Unknown scenario {scenario}. Available: {', '.join(SCENARIOS)}")
            return

        print("\n" + "=" * 70)
        print("  ALL SCENARIOS COMPLETED")
        print("=" * 70 + "\n")
    finally:
        await shutdown_database()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Engagement Engine Simulation")
    parser.add_argument(
        "--scenario",
        default=None,
        help="Run a specific scenario (A, B or C). Default: run all.",
    )
    parser.add_argument(
        "--sqlite",
        action="store_true",
        help="Use SQLite in-memory instead of PostgreSQL (no Docker needed).",
    )
    args = parser.parse_args()

    asyncio.run(run(args.scenario, use_sqlite=args.sqlite))
