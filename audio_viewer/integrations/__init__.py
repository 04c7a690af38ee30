"""Integrations with audio decoding and output libraries."""

from .audio_backend import (
    Mp3StreamPlayer,
    Mp3StreamWorker,
    SoundDeviceBackendFactory,
    SoundDeviceClipPlayer,
    ensure_output_device,
)
from .miniaudio_decoder import MiniaudioBlockDecoder
from .mp3_frames import (
    Mp3DecodeResult,
    Mp3FrameDecoder,
    Mp3FrameHeader,
    Mp3StreamInfo,
    estimate_duration_from_size,
    scan_frames,
    scan_stream_info,
)
from .soundfile_decoder import PcmClip, SoundfilePcmDecoder, SoundfilePcmStream, clip_from_pcm

__all__ = [
    "MiniaudioBlockDecoder",
    "Mp3DecodeResult",
    "Mp3FrameDecoder",
    "Mp3FrameHeader",
    "Mp3StreamInfo",
    "Mp3StreamPlayer",
    "Mp3StreamWorker",
    "PcmClip",
    "SoundDeviceBackendFactory",
    "SoundDeviceClipPlayer",
    "SoundfilePcmDecoder",
    "SoundfilePcmStream",
    "clip_from_pcm",
    "ensure_output_device",
    "estimate_duration_from_size",
    "scan_frames",
    "scan_stream_info",
]
