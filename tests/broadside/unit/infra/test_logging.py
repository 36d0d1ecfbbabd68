import logging

from broadside.infra.logging import (
    JsonFormatter,
    LoggingConfig,
    build_logging_config,
    configure_logging,
)


def test_json_formatter_includes_fields_and_message() -> None:
    logger = logging.getLogger("test.json.formatter")
    record = logger.makeRecord(
        name=logger.name,
        level=logging.INFO,
        fn=__file__,
        lno=1,
        msg="hello %s",
        args=("world",),
        exc_info=None,
        extra={"custom": 1},
    )
    payload = JsonFormatter().format(record)
    assert '"msg": "hello world"' in payload
    assert '"custom": 1' in payload


def test_build_logging_config_text_and_json(monkeypatch) -> None:
    monkeypatch.delenv("BROADSIDE_LOG_LEVEL", raising=False)
    monkeypatch.delenv("BROADSIDE_LOG_FILE", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("LOG_FORMAT", "text")
    config = build_logging_config()
    assert config.console_format == "text"
    assert config.file_path is None
    configure_logging(config)
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    monkeypatch.setenv("LOG_FORMAT", "json")
    configure_logging(build_logging_config())
    assert isinstance(root.handlers[0].formatter, JsonFormatter)


def test_configure_logging_streams_to_file(tmp_path) -> None:
    log_file = tmp_path / "logs" / "broadside.jsonl"
    configure_logging(LoggingConfig(level_name="INFO", file_path=str(log_file)))

    logging.getLogger("test.logging.file").info("ai_decision turn=%d", 3)
    configure_logging(LoggingConfig(level_name="INFO"))

    content = log_file.read_text(encoding="utf-8")
    assert '"msg": "ai_decision turn=3"' in content
