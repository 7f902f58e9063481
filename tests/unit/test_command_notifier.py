import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

from ocrwatch.notification.command_notifier import (
    DEFAULT_BACKENDS,
    CommandNotifier,
    dialog_command,
    notification_center_command,
    notify_send_command,
    terminal_notifier_command,
)


def _make_process(returncode: int = 0, stderr: bytes = b"") -> MagicMock:
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(b"", stderr))
    process.returncode = returncode
    return process


class TestCommandBuilders:
    def test_dialog_is_tried_first(self) -> None:
        assert DEFAULT_BACKENDS[0] is dialog_command

    def test_dialog_dismisses_itself(self) -> None:
        command = dialog_command("Done - a.png", "world", "Glass")
        assert command[:2] == ["osascript", "-e"]
        assert command[2].startswith('display dialog "world" with title "Done - a.png"')
        assert command[2].endswith("giving up after 3")

    def test_notification_center_escapes_quotes(self) -> None:
        command = notification_center_command('Done - "a".png', 'say "hi"', "Glass")
        assert command[:2] == ["osascript", "-e"]
        assert 'display notification "say \\"hi\\""' in command[2]
        assert 'with title "Done - \\"a\\".png"' in command[2]
        assert command[2].endswith('sound name "Glass"')

    def test_terminal_notifier(self) -> None:
        assert terminal_notifier_command("t", "m", None) == [
            "terminal-notifier",
            "-title",
            "t",
            "-message",
            "m",
        ]

    def test_notify_send_ignores_sound(self) -> None:
        assert notify_send_command("t", "m", "Glass") == ["notify-send", "t", "m"]


class TestCommandNotifier:
    def test_uses_first_installed_command(self) -> None:
        notifier = CommandNotifier(
            which=lambda name: "/usr/bin/notify-send" if name == "notify-send" else None
        )
        process = _make_process()
        with patch(
            "ocrwatch.notification.command_notifier.asyncio.create_subprocess_exec",
            new=AsyncMock(return_value=process),
        ) as exec_mock:
            shown = asyncio.run(notifier.notify("title", "message", "Glass"))

        assert shown is True
        assert exec_mock.await_args.args == ("notify-send", "title", "message")

    def test_falls_through_to_next_backend_on_failure(self) -> None:
        notifier = CommandNotifier(which=lambda name: f"/usr/bin/{name}")
        failing = _make_process(returncode=1, stderr=b"not allowed")
        working = _make_process()
        with patch(
            "ocrwatch.notification.command_notifier.asyncio.create_subprocess_exec",
            new=AsyncMock(side_effect=[failing, working]),
        ) as exec_mock:
            shown = asyncio.run(notifier.notify("title", "message"))

        assert shown is True
        assert exec_mock.await_count == 2
        first, second = (call.args for call in exec_mock.await_args_list)
        assert first[2].startswith("display dialog")
        assert second[2].startswith("display notification")

    def test_logs_when_nothing_is_installed(self) -> None:
        notifier = CommandNotifier(which=lambda name: None)
        with patch(
            "ocrwatch.notification.command_notifier.asyncio.create_subprocess_exec",
            new=AsyncMock(),
        ) as exec_mock:
            shown = asyncio.run(notifier.notify("title", "message"))

        assert shown is True
        exec_mock.assert_not_awaited()

    def test_availability(self) -> None:
        assert asyncio.run(CommandNotifier(which=lambda name: "/bin/x").check_availability())
        assert not asyncio.run(CommandNotifier(which=lambda name: None).check_availability())
