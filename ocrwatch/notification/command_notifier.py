import asyncio
import shutil
from collections.abc import Callable

from ocrwatch.logging.logger import Log
from ocrwatch.notification.base import BaseNotifier
from ocrwatch.notification.console_notifier import ConsoleNotifier

COMMAND_TIMEOUT_SECONDS = 5.0
DIALOG_DISMISS_SECONDS = 3

CommandBuilder = Callable[[str, str, str | None], list[str]]


def _applescript_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def dialog_command(title: str, message: str, sound: str | None) -> list[str]:
    """Modal dialog that closes itself; stays visible during screen recording."""
    _ = sound
    script = (
        f"display dialog {_applescript_string(message)} "
        f"with title {_applescript_string(title)} "
        f'buttons {{"OK"}} default button "OK" '
        f"giving up after {DIALOG_DISMISS_SECONDS}"
    )
    return ["osascript", "-e", script]


def notification_center_command(title: str, message: str, sound: str | None) -> list[str]:
    script = (
        f"display notification {_applescript_string(message)} "
        f"with title {_applescript_string(title)}"
    )
    if sound:
        script += f" sound name {_applescript_string(sound)}"
    return ["osascript", "-e", script]


def terminal_notifier_command(title: str, message: str, sound: str | None) -> list[str]:
    command = ["terminal-notifier", "-title", title, "-message", message]
    if sound:
        command += ["-sound", sound]
    return command


def notify_send_command(title: str, message: str, sound: str | None) -> list[str]:
    _ = sound
    return ["notify-send", title, message]


DEFAULT_BACKENDS: tuple[CommandBuilder, ...] = (
    dialog_command,
    notification_center_command,
    terminal_notifier_command,
    notify_send_command,
)


class CommandNotifier(BaseNotifier):
    """Shows desktop notifications through whichever OS command is installed.

    Backends are tried in order; the log is the last resort, so a machine with
    no notification mechanism at all still gets the message.
    """

    def __init__(
        self,
        backends: tuple[CommandBuilder, ...] = DEFAULT_BACKENDS,
        timeout_seconds: float = COMMAND_TIMEOUT_SECONDS,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self._backends = backends
        self._timeout_seconds = timeout_seconds
        self._which = which
        self._fallback = ConsoleNotifier()

    async def notify(self, title: str, message: str, sound: str | None = None) -> bool:
        for build in self._backends:
            command = build(title, message, sound)
            if self._which(command[0]) is None:
                continue
            try:
                await self._run(command)
            except (OSError, RuntimeError, asyncio.TimeoutError) as exc:
                Log.debug("Notification method failed, trying next", command=command[0], error=exc)
                continue
            Log.debug("Notification shown", title=title, command=command[0])
            return True
        return await self._fallback.notify(title, message, sound)

    async def check_availability(self) -> bool:
        commands = dict.fromkeys(build("", "", None)[0] for build in self._backends)
        available = [name for name in commands if self._which(name) is not None]
        if available:
            Log.info("System notifications available", commands=",".join(available))
            return True
        Log.warning("System notifications unavailable, falling back to log output")
        return False

    async def _run(self, command: list[str]) -> None:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(process.communicate(), self._timeout_seconds)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip()
            raise RuntimeError(f"{command[0]} exited with {process.returncode}: {detail}")
