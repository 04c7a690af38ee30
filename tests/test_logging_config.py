import logging
from pathlib import Path

from audio_viewer.config import PlayerConfig
from audio_viewer.logging_config import LOGGER_NAME, setup_logging


def _build_config(tmp_path: Path, *, to_file: bool) -> PlayerConfig:
    log_dir = tmp_path / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return PlayerConfig(
        log_level="INFO",
        file_log_level="DEBUG",
        log_dir=str(log_dir),
        log_file=str(log_dir / "audio_test.log") if to_file else None,
    )


def test_setup_logging_replaces_handlers(tmp_path):
    config = _build_config(tmp_path, to_file=True)
    logger = setup_logging(config)
    logger_again = setup_logging(config)

    assert logger is logger_again
    assert logger.name == LOGGER_NAME
    assert len(logger.handlers) == 2
    assert logger.propagate is False
    assert Path(config.log_file).exists()


def test_console_only_logging(tmp_path):
    logger = setup_logging(_build_config(tmp_path, to_file=False))

    assert len(logger.handlers) == 1
    assert logger.handlers[0].level == logging.INFO


def test_file_log_captures_debug_and_warnings(tmp_path):
    config = _build_config(tmp_path, to_file=True)
    logger = setup_logging(config)

    logging.getLogger(f"{LOGGER_NAME}.integrations").debug("decoded %d frames", 42)
    logging.getLogger("py.warnings").warning("odd chunk size in container")
    for handler in logger.handlers:
        handler.flush()

    text = Path(config.log_file).read_text(encoding="utf-8")
    assert "decoded 42 frames" in text
    assert "odd chunk size in container" in text
