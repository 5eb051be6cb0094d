"""NetEvent trace backend — drives the Windows NetEventPacketCapture cmdlets.

Session management shells out to ``New-NetEventSession``,
``Add-NetEventProvider``, ``Start-NetEventSession``, ``Stop-NetEventSession``
and ``Remove-NetEventSession``. Records are read back from the session's
``.etl`` file with ``Get-WinEvent -Path ... -Oldest`` and returned as JSON.

Requires Windows with an elevated PowerShell.
"""

from __future__ import annotations

import json
import logging
import subprocess
from datetime import datetime, timezone

from vfpwatch.trace.base import RecordQueryError, TraceSessionError
from vfpwatch.trace.models import RawRecord, SessionDescriptor

logger = logging.getLogger(__name__)

# Microsecond precision on both sides of the process boundary, so a
# watermark handed back to PowerShell compares equal to what it returned.
_WIRE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
_PS_WIRE_FORMAT = "yyyy-MM-dd'T'HH:mm:ss.ffffff'Z'"

_READ_SCRIPT = """\
$since = [datetime]::Parse({since}, [Globalization.CultureInfo]::InvariantCulture, \
[Globalization.DateTimeStyles]::RoundtripKind)
try {{
    $events = @(Get-WinEvent -Path {path} -Oldest -ErrorAction Stop |
        Where-Object {{ $_.TimeCreated.ToUniversalTime() -ge $since }} |
        ForEach-Object {{ [pscustomobject]@{{
            created = $_.TimeCreated.ToUniversalTime().ToString("{ps_format}")
            message = $_.Message
        }} }})
}} catch {{
    if ($_.FullyQualifiedErrorId -like 'NoMatchingEventsFound*') {{ $events = @() }}
    else {{ throw }}
}}
ConvertTo-Json -InputObject $events -Compress -Depth 2
"""


def _quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


def format_wire_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(_WIRE_FORMAT)


def parse_wire_time(value: str) -> datetime:
    return datetime.strptime(value, _WIRE_FORMAT).replace(tzinfo=timezone.utc)


class NetEventBackend:
    """TraceBackend implementation on top of PowerShell NetEvent sessions."""

    def __init__(self, executable: str = "powershell.exe", timeout: float = 30.0) -> None:
        self._executable = executable
        self._timeout = timeout

    def _run(self, script: str) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [self._executable, "-NoProfile", "-NonInteractive", "-Command", script],
            capture_output=True,
            text=True,
            timeout=self._timeout,
        )

    def _session_command(self, script: str, action: str) -> str:
        logger.debug("PowerShell: %s", script)
        try:
            proc = self._run(script)
        except FileNotFoundError as exc:
            raise TraceSessionError(
                f"Cannot {action}: {self._executable} not found"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise TraceSessionError(
                f"Cannot {action}: timed out after {self._timeout}s"
            ) from exc

        if proc.returncode != 0:
            detail = proc.stderr.strip() or proc.stdout.strip()
            raise TraceSessionError(f"Cannot {action}: {detail}")
        return proc.stdout.strip()

    def _session_status(self, name: str) -> str | None:
        out = self._session_command(
            f"Get-NetEventSession -Name {_quote(name)} -ErrorAction SilentlyContinue"
            " | Select-Object -ExpandProperty SessionStatus",
            f"query session '{name}'",
        )
        return out or None

    def session_exists(self, name: str) -> bool:
        return self._session_status(name) is not None

    def session_running(self, name: str) -> bool:
        return self._session_status(name) == "Running"

    def create_session(self, descriptor: SessionDescriptor) -> None:
        self._session_command(
            f"New-NetEventSession -Name {_quote(descriptor.name)}"
            " -CaptureMode SaveToFile"
            f" -LocalFilePath {_quote(descriptor.file_path)}"
            f" -MaxFileSize {descriptor.max_file_size_mb}"
            f" -TraceBufferSize {descriptor.buffer_size_kb}"
            f" -MaxNumberOfBuffers {descriptor.buffer_count}"
            " | Out-Null",
            f"create session '{descriptor.name}'",
        )

    def add_provider(self, name: str, provider: str) -> None:
        self._session_command(
            f"Add-NetEventProvider -Name {_quote(provider)}"
            f" -SessionName {_quote(name)} | Out-Null",
            f"add provider '{provider}' to session '{name}'",
        )

    def start_session(self, name: str) -> None:
        self._session_command(
            f"Start-NetEventSession -Name {_quote(name)}",
            f"start session '{name}'",
        )

    def stop_session(self, name: str) -> None:
        self._session_command(
            f"Stop-NetEventSession -Name {_quote(name)}",
            f"stop session '{name}'",
        )

    def remove_session(self, name: str) -> None:
        self._session_command(
            f"Remove-NetEventSession -Name {_quote(name)}",
            f"remove session '{name}'",
        )

    def read_records_since(self, file_path: str, since: datetime) -> list[RawRecord]:
        script = _READ_SCRIPT.format(
            since=_quote(format_wire_time(since)),
            path=_quote(file_path),
            ps_format=_PS_WIRE_FORMAT,
        )
        try:
            proc = self._run(script)
        except (FileNotFoundError, subprocess.TimeoutExpired) as exc:
            raise RecordQueryError(f"Cannot read {file_path}: {exc}") from exc

        if proc.returncode != 0:
            raise RecordQueryError(
                f"Cannot read {file_path}: {proc.stderr.strip() or proc.stdout.strip()}"
            )

        return _parse_records(proc.stdout, since)


def _parse_records(output: str, since: datetime) -> list[RawRecord]:
    """Decode the JSON emitted by the read script, keeping records after ``since``."""
    text = output.strip()
    if not text:
        return []

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RecordQueryError(f"Malformed record output: {exc}") from exc

    # A single event may come back unwrapped on older PowerShell versions
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise RecordQueryError(f"Unexpected record output type: {type(data).__name__}")

    records: list[RawRecord] = []
    for item in data:
        try:
            created = parse_wire_time(item["created"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RecordQueryError(f"Malformed record {item!r}: {exc}") from exc
        message = item.get("message")
        if message is None:
            message = ""
        elif not isinstance(message, str):
            raise RecordQueryError(
                f"Malformed record {item!r}: message is {type(message).__name__}"
            )
        if created <= since:
            continue
        records.append(RawRecord(created=created, message=message))
    return records
