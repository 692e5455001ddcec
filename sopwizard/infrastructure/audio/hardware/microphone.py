"""
Microphone access behind a small backend interface.

PyAudio is imported lazily so the rest of the package works on machines
without PortAudio; such machines simply report capture as unavailable.
"""
import errno
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from ....config import (
    SAMPLE_RATE_CAPTURE, CHANNELS, FRAME_MS,
    ECHO_CANCELLATION, NOISE_SUPPRESSION, AUTO_GAIN_CONTROL
)
from ....errors import CaptureUnavailable, CapturePermissionDenied
from ....utils import load_module_quietly, with_suppressed_audio_warnings

logger = logging.getLogger("microphone")

ChunkHandler = Callable[[bytes], None]


@dataclass(frozen=True)
class CaptureConstraints:
    """Requested properties of the input stream."""
    echo_cancellation: bool = ECHO_CANCELLATION
    noise_suppression: bool = NOISE_SUPPRESSION
    auto_gain_control: bool = AUTO_GAIN_CONTROL
    sample_rate: int = SAMPLE_RATE_CAPTURE
    channels: int = CHANNELS
    frame_ms: int = FRAME_MS

    @property
    def frames_per_buffer(self) -> int:
        return int(self.sample_rate * self.frame_ms / 1000)


class AudioInputStream(ABC):
    """One open hardware input stream."""

    #: Whether level analysis can run on this stream's audio
    supports_analysis: bool = True

    @property
    @abstractmethod
    def active(self) -> bool:
        """True until :meth:`stop` released the device."""

    @abstractmethod
    def stop(self) -> None:
        """Stop all tracks and release the device. Must be idempotent."""


class AudioInputBackend(ABC):
    """Opens input streams on some audio platform."""

    @abstractmethod
    def open_stream(self, constraints: CaptureConstraints, on_chunk: ChunkHandler) -> AudioInputStream:
        """
        Open and start an input stream.

        ``on_chunk`` receives raw mono PCM16 bytes and may be called from
        another thread.

        Raises:
            CaptureUnavailable: No usable input device or audio library
            CapturePermissionDenied: Access to the microphone was refused
        """


class PyAudioStream(AudioInputStream):
    """PyAudio/PortAudio callback stream."""

    def __init__(self, pa, stream):
        self._pa = pa
        self._stream = stream
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        try:
            if self._stream.is_active():
                self._stream.stop_stream()
            self._stream.close()
        except OSError as e:
            logger.warning("Error while closing input stream: %s", e)
        finally:
            self._pa.terminate()
        logger.info("Microphone released")


class PyAudioBackend(AudioInputBackend):
    """Captures from the default (or a chosen) PortAudio input device."""

    def __init__(self, input_device: Optional[int] = None):
        self.input_device = input_device

    def _load_pyaudio(self):
        try:
            return load_module_quietly("pyaudio")
        except ImportError as e:
            raise CaptureUnavailable(f"PyAudio is not installed: {e}")

    @with_suppressed_audio_warnings
    def open_stream(self, constraints: CaptureConstraints, on_chunk: ChunkHandler) -> AudioInputStream:
        pyaudio = self._load_pyaudio()
        if constraints.echo_cancellation:
            logger.debug("PortAudio has no echo cancellation; relying on the OS input chain")

        pa = pyaudio.PyAudio()
        try:
            device_index = self._resolve_device(pa)

            def _callback(in_data, frame_count, time_info, status):
                on_chunk(in_data)
                return (None, pyaudio.paContinue)

            stream = pa.open(
                format=pyaudio.paInt16,
                channels=constraints.channels,
                rate=constraints.sample_rate,
                input=True,
                input_device_index=device_index,
                frames_per_buffer=constraints.frames_per_buffer,
                stream_callback=_callback,
            )
            stream.start_stream()
        except PermissionError as e:
            pa.terminate()
            raise CapturePermissionDenied(str(e))
        except OSError as e:
            pa.terminate()
            if e.errno in (errno.EACCES, errno.EPERM):
                raise CapturePermissionDenied(str(e))
            raise CaptureUnavailable(f"Could not open microphone: {e}")
        except CaptureUnavailable:
            pa.terminate()
            raise

        logger.info(f"Microphone opened: device {device_index}, {constraints.sample_rate} Hz, "
                    f"{constraints.frames_per_buffer} frames per buffer")
        return PyAudioStream(pa, stream)

    def _resolve_device(self, pa) -> int:
        """Pick the configured input device, or the system default."""
        if self.input_device is not None:
            info = pa.get_device_info_by_index(self.input_device)
            if int(info.get("maxInputChannels", 0)) <= 0:
                raise CaptureUnavailable(f"Device {self.input_device} has no input channels")
            return self.input_device
        try:
            info = pa.get_default_input_device_info()
        except (IOError, OSError) as e:
            raise CaptureUnavailable(f"No default input device: {e}")
        return int(info["index"])
