#!/usr/bin/env python3
"""Main entry point for Quiz Pilot."""
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from pilot_agent import LayoutMemory, QuizSolver
from pilot_os import CaptureManager, InputHandler, load_configs
from pilot_vision import build_backend

API_KEY_ENV = {
    "openrouter": "OPENROUTER_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application.

    Args:
        level: Logging level (default: INFO)

    Returns:
        Root logger instance
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger()


async def run(solver: QuizSolver, logger: logging.Logger) -> int:
    """Start the solver and block until a signal arrives or the run ends by itself."""

    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_requested.set)
        except NotImplementedError:  # pragma: no cover - Windows event loops
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_requested.set))

    result = await solver.start()
    if not result.success:
        logger.error("Could not start solver: %s", result.error)
        return 1

    logger.info("Solver running; press Ctrl+C to stop")
    while solver.is_active() and not stop_requested.is_set():
        try:
            await asyncio.wait_for(stop_requested.wait(), timeout=1.0)
        except asyncio.TimeoutError:
            continue

    if solver.is_active():
        solver.stop()
    logger.info("Solver stopped")
    return 0


def main() -> int:
    """Main entry point."""
    logger = setup_logging(level=logging.INFO)

    logger.info("=" * 70)
    logger.info("Quiz Pilot - screen-driven quiz automation")
    logger.info("=" * 70)

    config_path = Path("config.yaml")
    if not config_path.exists():
        logger.warning("config.yaml not found; using defaults")

    try:
        capture_cfg, vision_cfg, solver_cfg = load_configs(config_path)
    except Exception as exc:
        logger.error("Failed to load configuration: %s", exc)
        return 1

    logger.info("Configuration loaded successfully")
    logger.info("  Monitor: %d", capture_cfg.monitor)
    logger.info("  Vision: %s (%s)", vision_cfg.provider, vision_cfg.model)
    logger.info("  Language: %s", solver_cfg.language)
    logger.info("  Interval: %dms", solver_cfg.interval_ms)
    logger.info("  Memory dir: %s", solver_cfg.memory_dir)
    logger.info("  Logs dir: %s", solver_cfg.logs_dir)

    env_name = API_KEY_ENV.get(vision_cfg.provider)
    if env_name is None:
        logger.error("Unknown vision provider: %s", vision_cfg.provider)
        return 1
    if not os.environ.get(env_name):
        logger.error("%s environment variable not set", env_name)
        logger.error("Please set it before running: export %s='your-key-here'", env_name)
        return 1

    try:
        solver = QuizSolver(
            capture=CaptureManager(capture_cfg, logger=logging.getLogger("pilot_os.capture")),
            input_handler=InputHandler(logger=logging.getLogger("pilot_os.input")),
            backend=build_backend(vision_cfg),
            config=solver_cfg,
            vision_config=vision_cfg,
            memory=LayoutMemory(solver_cfg.memory_dir),
            logger=logging.getLogger("pilot_agent.solver"),
        )
        return asyncio.run(run(solver, logger))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as exc:
        logger.exception("Fatal error: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
