import json
import logging

from app.core.logging_config import ContextTextFormatter, JsonFormatter, request_id_ctx_var, RequestIdFilter


def _record(**extra: object) -> logging.LogRecord:
    record = logging.makeLogRecord({"name": "app.test", "levelname": "INFO", "msg": "coupon_issued"})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_request_id_and_extras() -> None:
    token = request_id_ctx_var.set("req-42")
    try:
        record = _record(coupon_code="FU-ABCDEF12", attempts=2)
        RequestIdFilter().filter(record)
    finally:
        request_id_ctx_var.reset(token)

    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "coupon_issued"
    assert payload["request_id"] == "req-42"
    assert payload["coupon_code"] == "FU-ABCDEF12"
    assert payload["attempts"] == 2


def test_text_formatter_appends_extras() -> None:
    record = _record(expired_count=3)
    RequestIdFilter().filter(record)
    line = ContextTextFormatter("%(levelname)s [%(request_id)s] %(message)s").format(record)
    assert line == "INFO [-] coupon_issued expired_count=3"
