"""Speech-to-text backends: a remote Whisper API and the local whisper CLI."""

import asyncio
import json
import logging
import shutil
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import httpx

from voicenotes.config import Settings
from voicenotes.schemas.note import Segment, Transcript
from voicenotes.utils.exceptions import TranscriptionError

logger = logging.getLogger(__name__)

AVAILABLE_LOCAL_MODELS = {
    "tiny": "Fastest, least accurate (~75MB)",
    "base": "Fast, decent accuracy (~145MB) - Recommended",
    "small": "Balanced speed/accuracy (~500MB)",
    "medium": "Slow, high accuracy (~1.5GB)",
    "large": "Slowest, highest accuracy (~3GB)",
}


@dataclass
class TranscriptionOptions:
    """Per-call transcription options."""

    model_size: str | None = None
    language_hint: str = "auto"


def _parse_segments(raw_segments: list[dict] | None) -> list[Segment]:
    segments = []
    for seg in raw_segments or []:
        try:
            segments.append(
                Segment(
                    start=float(seg.get("start", 0.0)),
                    end=float(seg.get("end", 0.0)),
                    text=str(seg.get("text", "")).strip(),
                )
            )
        except (TypeError, ValueError, AttributeError):
            logger.warning(f"Skipping malformed segment: {seg!r}")
    return segments


class TranscriptionBackend(ABC):
    """Converts a stored audio file into a transcript."""

    name: str = "unknown"

    def is_available(self) -> bool:
        """Whether the backend is installed and configured."""
        return True

    def unavailable_reason(self) -> str:
        return f"Transcription backend '{self.name}' is not available"

    @abstractmethod
    async def transcribe(
        self, audio_path: Path, options: TranscriptionOptions
    ) -> Transcript:
        """
        Transcribe an audio file.

        ``language_hint == "auto"`` leaves language detection to the backend;
        any other value is a request the backend may ignore.

        Raises:
            TranscriptionError: If the call fails
        """


class RemoteTranscriptionBackend(TranscriptionBackend):
    """OpenAI-compatible ``/audio/transcriptions`` endpoint."""

    name = "openai-whisper"

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        model: str = "whisper-1",
        timeout: float = 600.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the remote backend.

        Args:
            api_key: API key sent as a bearer token
            base_url: API base URL including the version path
            model: Remote model name
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.transport = transport

    def is_available(self) -> bool:
        return bool(self.api_key)

    def unavailable_reason(self) -> str:
        return "OpenAI API key not configured"

    async def transcribe(
        self, audio_path: Path, options: TranscriptionOptions
    ) -> Transcript:
        if not self.api_key:
            raise TranscriptionError(self.unavailable_reason())

        logger.info(f"Transcribing with OpenAI Whisper: {audio_path}")
        data = {
            "model": options.model_size or self.model,
            "response_format": "verbose_json",
        }
        if options.language_hint and options.language_hint != "auto":
            data["language"] = options.language_hint

        started = time.monotonic()
        try:
            audio_bytes = await asyncio.to_thread(Path(audio_path).read_bytes)
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/audio/transcriptions",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    data=data,
                    files={"file": (Path(audio_path).name, audio_bytes)},
                    timeout=self.timeout,
                )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            try:
                error_msg = e.response.json().get("error", {}).get("message", str(e))
            except Exception:
                error_msg = str(e)
            raise TranscriptionError(
                f"Whisper API error {e.response.status_code}: {error_msg}"
            ) from e
        except httpx.HTTPError as e:
            raise TranscriptionError(f"Whisper API request failed: {e}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise TranscriptionError(str(e)) from e

        if not isinstance(result, dict) or "text" not in result:
            raise TranscriptionError("Whisper API returned no text")

        return Transcript(
            text=str(result.get("text", "")).strip(),
            language_code=result.get("language") or "unknown",
            duration_seconds=float(result.get("duration") or 0.0),
            segments=_parse_segments(result.get("segments")),
            backend=self.name,
            model=data["model"],
            processing_seconds=round(time.monotonic() - started, 2),
        )


class LocalTranscriptionBackend(TranscriptionBackend):
    """The ``whisper`` command-line engine installed on this machine."""

    name = "local-whisper"

    def __init__(self, command: str = "whisper", model: str = "base"):
        """
        Initialize the local backend.

        Args:
            command: Name or path of the whisper executable
            model: Default model size (tiny, base, small, medium, large)
        """
        self.command = command
        self.model = model

    def is_available(self) -> bool:
        return shutil.which(self.command) is not None

    def unavailable_reason(self) -> str:
        return "Whisper not installed. Run: pipx install openai-whisper"

    async def transcribe(
        self, audio_path: Path, options: TranscriptionOptions
    ) -> Transcript:
        executable = shutil.which(self.command)
        if executable is None:
            raise TranscriptionError(self.unavailable_reason())

        model = options.model_size or self.model
        language = options.language_hint or "auto"
        audio_path = Path(audio_path)

        with tempfile.TemporaryDirectory(prefix="whisper-") as output_dir:
            args = [
                str(audio_path),
                "--model",
                model,
                "--output_dir",
                output_dir,
                "--output_format",
                "json",
                "--verbose",
                "False",
            ]
            if language != "auto":
                args += ["--language", language]

            logger.info(
                f"[Whisper] Transcribing {audio_path.name} with model {model}, "
                f"language {'auto-detect' if language == 'auto' else language}"
            )
            started = time.monotonic()
            stderr = await self._run(executable, args)
            elapsed = round(time.monotonic() - started, 2)
            logger.info(f"[Whisper] Completed in {elapsed}s")

            json_path = Path(output_dir) / f"{audio_path.stem}.json"
            try:
                result = json.loads(json_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                detail = stderr.strip().splitlines()[-1:] or [str(e)]
                raise TranscriptionError(
                    f"Could not read whisper output: {detail[0]}"
                ) from e

        segments = _parse_segments(result.get("segments"))
        return Transcript(
            text=str(result.get("text", "")).strip(),
            language_code=result.get("language") or "unknown",
            duration_seconds=segments[-1].end if segments else 0.0,
            segments=segments,
            backend=self.name,
            model=model,
            processing_seconds=elapsed,
        )

    async def _run(self, executable: str, args: list[str]) -> str:
        """Run whisper, killing the child if the caller gives up on it."""
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TranscriptionError(f"Failed to start whisper: {e}") from e

        try:
            _stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        stderr_text = stderr.decode("utf-8", errors="replace")
        if process.returncode != 0:
            tail = stderr_text.strip().splitlines()[-1:] or ["no output"]
            raise TranscriptionError(
                f"whisper exited with code {process.returncode}: {tail[0]}"
            )
        return stderr_text


def get_transcription_backend(settings: Settings) -> TranscriptionBackend:
    """
    Build the transcription backend selected by configuration.

    Args:
        settings: Application settings

    Returns:
        Configured backend instance
    """
    if settings.transcription_backend == "local":
        return LocalTranscriptionBackend(
            command=settings.whisper_command,
            model=settings.whisper_model,
        )
    return RemoteTranscriptionBackend(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.transcription_model,
        timeout=settings.transcription_timeout,
    )
