"""
Main entrypoint: trust agent loop in a background thread + FastAPI server in main thread.

--single-run: run one scoring pass and exit (non-zero if any identity failed).
--no-api: run the agent loop in the foreground without the HTTP server.
--create-campaign NAME: register a claim campaign (authority = operator key,
    payout = PAYOUT_AMOUNT) with --min-score and --treasury, optionally funding
    the treasury with --fund lamports, then exit.

Env: SOLANA_RPC_URL, DB_PATH, AUTHORITY_PRIVATE_KEY or WALLET_PATH, WALLETS (optional
comma-separated fixed identities; otherwise recent block signers are discovered),
INTERVAL_SEC, API_HOST, API_PORT.
"""

import argparse
import os
import sys
import threading

from backend_veritas.logging import get_logger

logger = get_logger("main")


def create_campaign(
    db,
    authority: str,
    campaign: str,
    *,
    min_score: int,
    treasury: str | None,
    payout_amount: int,
    fund: int = 0,
) -> int:
    """Register a claim campaign owned by authority; optionally fund its treasury. Returns an exit code."""
    from backend_veritas.core.exceptions import VeritasError

    treasury = treasury or authority
    try:
        config = db.create_claim_config(campaign, authority, min_score, treasury, payout_amount)
        balance = db.deposit(config.treasury, fund) if fund else db.get_balance(config.treasury)
    except (VeritasError, ValueError) as e:
        logger.error("main_campaign_error", campaign=campaign, message=str(e))
        return 1
    logger.info(
        "main_campaign_created",
        campaign=config.campaign,
        min_score_required=config.min_score_required,
        payout_amount=config.payout_amount,
        treasury_balance=balance,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Veritas trust scoring agent")
    parser.add_argument("--single-run", action="store_true", help="Run one pass and exit")
    parser.add_argument("--no-api", action="store_true", help="Do not start the HTTP server")
    parser.add_argument("--create-campaign", metavar="NAME", help="Create a claim campaign and exit")
    parser.add_argument("--min-score", type=int, default=50, help="Campaign minimum trust score (0-100)")
    parser.add_argument("--treasury", help="Treasury address (default: operator key)")
    parser.add_argument("--fund", type=int, default=0, help="Lamports to deposit into the treasury")
    args = parser.parse_args(argv)

    from backend_veritas.agent_worker import build_trust_agent
    from backend_veritas.config import get_settings, load_authority_keypair
    from backend_veritas.config.env import mask_rpc_url
    from backend_veritas.database import get_database
    from backend_veritas.solana_listener import StaticIdentitySource

    settings = get_settings()
    try:
        authority = load_authority_keypair()
    except ValueError as e:
        logger.error("main_config_error", message=str(e))
        return 1

    db = get_database(
        settings.db_path,
        veritas_program_id=settings.veritas_program_id,
        airdrop_program_id=settings.airdrop_program_id,
    )
    if args.create_campaign:
        return create_campaign(
            db,
            str(authority.pubkey()),
            args.create_campaign,
            min_score=args.min_score,
            treasury=args.treasury,
            payout_amount=settings.payout_amount,
            fund=args.fund,
        )

    env_wallets = [w.strip() for w in os.getenv("WALLETS", "").split(",") if w.strip()]
    source = StaticIdentitySource(env_wallets) if env_wallets else None
    agent = build_trust_agent(settings, db, authority, source=source)
    logger.info(
        "main_agent_configured",
        rpc_url=mask_rpc_url(settings.rpc_url),
        program_id=settings.veritas_program_id,
        authority=str(authority.pubkey()),
        source="WALLETS env" if source else "observer",
        interval_sec=settings.interval_sec,
    )

    if args.single_run:
        summary = agent.run_once()
        return 1 if summary.failed else 0

    stop_event = threading.Event()
    if args.no_api:
        try:
            agent.run_forever(stop_event)
        except KeyboardInterrupt:
            logger.info("main_shutdown_signal")
            stop_event.set()
        return 0

    worker_thread = threading.Thread(
        target=agent.run_forever, args=(stop_event,), name="veritas-agent", daemon=True
    )
    worker_thread.start()
    logger.info("main_worker_started", thread="daemon")

    import uvicorn

    from backend_veritas.api_server.server import app

    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    try:
        uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())
    finally:
        stop_event.set()
    return 0


if __name__ == "__main__":
    sys.exit(main())
