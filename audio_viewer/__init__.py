"""Audio ingestion, waveform extraction and playback control."""
