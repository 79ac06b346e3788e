"""
Entry point for the headless simulator.

Usage:
    python -m arbsim
    arbsim  # if installed via pip
"""

import asyncio
import sys


def _install_uvloop() -> bool:
    try:
        import uvloop
    except ImportError:
        return False

    uvloop.install()
    return True


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    import pydantic

    from arbsim import __version__
    from arbsim.config.settings import get_app_settings
    from arbsim.core.engine import create_engine
    from arbsim.telemetry.logger import setup_logging

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     MULTI-EXCHANGE ARBITRAGE SIMULATOR v{__version__:<16}      ║
║                                                               ║
║     Simulated quotes, admission control, stepwise execution   ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    try:
        settings = get_app_settings()
    except pydantic.ValidationError as e:
        print(f"Configuration error: {e}")
        print("\nCheck ARBSIM_* environment variables and your .env file.")
        return 1

    uvloop_enabled = settings.use_uvloop and _install_uvloop()

    print("Configuration:")
    print(f"  Price refresh:  every {settings.price_refresh_interval_s}s")
    print(f"  Detection:      every {settings.detection_interval_s}s")
    print(f"  Volatility:     {settings.price_volatility * 100:.2f}%")
    print(f"  RNG seed:       {settings.rng_seed if settings.rng_seed is not None else 'random'}")
    print(f"  uvloop:         {'Enabled' if uvloop_enabled else 'Disabled'}")
    print()

    async_logger = setup_logging(settings.log_level, settings.log_file)

    async def run_engine() -> int:
        try:
            async with create_engine(settings) as engine:
                await engine.run()
            return 0

        except KeyboardInterrupt:
            print("\nInterrupted by user")
            return 0

        except Exception as e:
            print(f"\nFatal error: {e}")
            import traceback

            traceback.print_exc()
            return 1

    try:
        return asyncio.run(run_engine())
    finally:
        async_logger.stop()


if __name__ == "__main__":
    sys.exit(main())
