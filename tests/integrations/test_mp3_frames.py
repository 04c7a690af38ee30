import io

import pytest

from audio_viewer.domain.formats import DurationSource
from audio_viewer.integrations.mp3_frames import (
    MPEG2,
    Mp3FrameDecoder,
    Mp3FrameHeader,
    estimate_duration_from_size,
    scan_frames,
    scan_stream_info,
)
from audio_viewer.storage.audio_source import BytesAudioSource


def test_parse_mpeg1_layer3_header():
    header = Mp3FrameHeader.parse(b"\xff\xfb\x90\x00")

    assert header.layer == 3
    assert header.bitrate_kbps == 128
    assert header.sample_rate == 44100
    assert header.channels == 2
    assert header.samples_per_frame == 1152
    assert header.frame_length == 417


def test_parse_padding_mono_and_mpeg2():
    padded_mono = Mp3FrameHeader.parse(b"\xff\xfb\x92\xc0")
    assert padded_mono.frame_length == 418
    assert padded_mono.channels == 1

    # MPEG-2 layer III, 64 kbps, 22.05 kHz
    mpeg2 = Mp3FrameHeader.parse(b"\xff\xf3\x80\x00")
    assert mpeg2.version == MPEG2
    assert mpeg2.sample_rate == 22050
    assert mpeg2.samples_per_frame == 576
    assert mpeg2.frame_length == 72 * 64000 // 22050


@pytest.mark.parametrize(
    "data",
    [b"\x00\x00\x00\x00", b"\xff\xfb\xf0\x00", b"\xff\xfb\x9c\x00", b"\xff\xe9\x90\x00", b"\xff"],
)
def test_invalid_headers_raise_value_error(data):
    with pytest.raises(ValueError):
        Mp3FrameHeader.parse(data)


def test_scan_skips_id3v2_and_stops_at_id3v1(mp3_bytes, id3v2):
    data = mp3_bytes(12, prefix=id3v2(100), id3v1=True)

    info = scan_stream_info(io.BytesIO(data))

    assert info.frame_count == 12
    assert info.total_samples == 12 * 1152
    assert info.sample_rate == 44100
    assert info.channels == 2
    assert info.average_bitrate_bps == 128000
    assert not info.vbr
    assert not info.corrupt
    assert info.duration().source is DurationSource.FRAME_SCAN
    assert info.duration().microseconds == 12 * 1152 * 1_000_000 // 44100


def test_scan_resyncs_across_junk_between_frames(mp3_bytes):
    data = mp3_bytes(10, junk=bytes(300))

    headers = list(scan_frames(io.BytesIO(data), resync_window=1024))

    assert len(headers) == 10


def test_scan_flags_lost_sync_when_junk_exceeds_window(mp3_bytes, logger):
    data = mp3_bytes(10, junk=bytes(5000))

    info = scan_stream_info(io.BytesIO(data), resync_window=1024, logger=logger)

    assert info.frame_count == 5
    assert info.corrupt
    assert any("Lost MPEG frame sync" in message for message in logger.warnings)


def test_scan_of_non_mpeg_bytes_finds_nothing():
    info = scan_stream_info(io.BytesIO(b"not an mp3 at all" * 10))

    assert info.frame_count == 0
    assert info.duration() is None


def test_size_heuristic_for_three_megabytes_is_a_plausible_estimate():
    estimate = estimate_duration_from_size(3_000_000)

    assert 150_000_000 <= estimate.microseconds <= 190_000_000
    assert not estimate.exact
    assert estimate.source is DurationSource.BITRATE_HEURISTIC


def test_size_heuristic_bands_and_floor():
    assert estimate_duration_from_size(100).seconds == 1
    assert estimate_duration_from_size(800_000).seconds == 100
    assert estimate_duration_from_size(8 * 1024 * 1024).seconds == 8 * 1024 * 1024 // 20000
    assert estimate_duration_from_size(20 * 1024 * 1024).seconds == 20 * 1024 * 1024 // 24000


def test_decode_frames_builds_envelope_and_pcm(mp3_bytes, block_decoder_factory, logger):
    source = BytesAudioSource("song.mp3", mp3_bytes(40))
    decoder = Mp3FrameDecoder(block_decoder_factory(blocks=40, amplitude=0.5), logger)

    result = decoder.decode_frames(source, max_envelope_points=10)

    assert result.frames_decoded == 40
    assert not result.corrupt
    assert len(result.amplitudes) == 10
    assert all(value == pytest.approx(0.5) for value in result.amplitudes)
    assert result.sample_frames == 40 * 1152
    assert result.descriptor.channel_count == 2
    assert result.as_pcm_stream().frame_length == 40 * 1152


def test_decode_frames_keeps_partial_result_on_corruption(
    mp3_bytes, block_decoder_factory, logger
):
    source = BytesAudioSource("broken.mp3", mp3_bytes(20))
    decoder = Mp3FrameDecoder(block_decoder_factory(blocks=20, fail_after=5), logger)

    result = decoder.decode_frames(source, max_envelope_points=100)

    assert result.frames_decoded == 5
    assert result.corrupt
    assert result.amplitudes
    assert any("stopped after 5 frames" in message for message in logger.warnings)


def test_duration_falls_back_to_size_heuristic(logger):
    source = BytesAudioSource("noise.mp3", bytes(2_000_000))
    decoder = Mp3FrameDecoder(None, logger)

    duration = decoder.duration(source)

    assert duration.source is DurationSource.BITRATE_HEURISTIC
    assert duration.seconds == 2_000_000 // 16000
    assert logger.warnings
