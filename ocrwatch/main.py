import asyncio
import signal
import sys

from ocrwatch.config.settings import Settings, load_settings
from ocrwatch.exceptions import ConfigError, FileError, ValidationError
from ocrwatch.logging.logger import Log
from ocrwatch.service.application import build_application


async def run(settings: Settings) -> None:
    """Run until SIGINT/SIGTERM, then shut down gracefully."""
    application = build_application(settings)
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_stop(signame: str) -> None:
        Log.info(f"Received {signame}, shutting down gracefully")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_stop, sig.name)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            signal.signal(
                sig,
                lambda signum, _frame: loop.call_soon_threadsafe(
                    request_stop, signal.Signals(signum).name
                ),
            )

    await application.run(stop_event)


def main() -> None:
    """Entry point: load settings -> configure logging -> watch until signalled."""
    try:
        settings = load_settings()
    except (ConfigError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    Log.configure(settings.log_level)
    try:
        asyncio.run(run(settings))
    except (ConfigError, ValidationError, FileError) as exc:
        Log.error(f"ocrwatch failed to start: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
