from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import pytest

from gintiny.response_writer import Headers
from gintiny.signing.errors import PublicError
from gintiny.signing.validators import (
    ERR_DATE_NOT_IN_RANGE,
    ERR_INVALID_DIGEST,
    MAX_TIME_GAP,
    DateValidator,
    DigestValidator,
    Request,
    Validator,
    calculate_digest,
)

SAMPLE_BODY = b"hello world"
SAMPLE_DIGEST = "SHA-256=uU0nuZNNPgilLlLX2n2r+sSE7+N6U4DukIj3rOLvzek="
FALSE_DIGEST = "SHA-256=fakeDigest="

NOW = datetime(2018, 10, 22, 7, 0, 7, tzinfo=timezone.utc)


def _dated(moment: datetime) -> Request:
    return Request(headers=Headers({"Date": format_datetime(moment, usegmt=True)}))


def _validator() -> DateValidator:
    return DateValidator(clock=lambda: NOW)


def test_calculate_digest_of_body():
    assert calculate_digest(Request(method="POST", body=SAMPLE_BODY)) == SAMPLE_DIGEST


def test_calculate_digest_without_body_is_empty():
    assert calculate_digest(Request()) == ""
    assert calculate_digest(Request(body=b"")) == ""


def test_digest_validator_accepts_matching_digest():
    request = Request(method="POST", body=SAMPLE_BODY, headers=Headers({"Digest": SAMPLE_DIGEST}))
    DigestValidator().validate(request)
    assert request.body == SAMPLE_BODY


def test_digest_validator_rejects_false_digest():
    request = Request(method="POST", body=SAMPLE_BODY, headers=Headers({"Digest": FALSE_DIGEST}))
    with pytest.raises(PublicError) as excinfo:
        DigestValidator().validate(request)
    assert excinfo.value is ERR_INVALID_DIGEST


def test_digest_validator_rejects_digest_for_empty_body():
    request = Request(headers=Headers({"Digest": SAMPLE_DIGEST}))
    with pytest.raises(PublicError) as excinfo:
        DigestValidator().validate(request)
    assert excinfo.value is ERR_INVALID_DIGEST


def test_date_validator_default_gap():
    assert DateValidator().time_gap == MAX_TIME_GAP == timedelta(seconds=30)


def test_date_validator_accepts_current_date():
    request = _dated(NOW)
    _validator().validate(request)
    assert request.headers.get("Date").endswith("GMT")


def test_date_validator_accepts_edges_of_gap():
    validator = _validator()
    for moment in (NOW - MAX_TIME_GAP, NOW + MAX_TIME_GAP):
        validator.validate(_dated(moment))
    with pytest.raises(PublicError) as excinfo:
        validator.validate(_dated(NOW + MAX_TIME_GAP + timedelta(seconds=1)))
    assert excinfo.value is ERR_DATE_NOT_IN_RANGE


def test_date_validator_rejects_old_date():
    request = _dated(datetime(1990, 10, 20, tzinfo=timezone.utc))
    with pytest.raises(PublicError) as excinfo:
        _validator().validate(request)
    assert excinfo.value is ERR_DATE_NOT_IN_RANGE


@pytest.mark.parametrize("fmt", ["%A, %d-%b-%y %H:%M:%S GMT", "%a %b %d %H:%M:%S %Y"])
def test_date_validator_accepts_other_http_formats(fmt):
    request = Request(headers=Headers({"Date": NOW.strftime(fmt)}))
    _validator().validate(request)
    assert request.headers.get("Date") == NOW.strftime(fmt)


@pytest.mark.parametrize("value", ["", "yesterday"])
def test_date_validator_rejects_unparseable_date(value):
    request = Request(headers=Headers({"Date": value}))
    with pytest.raises(PublicError, match="^Could not parse date header. Error: "):
        _validator().validate(request)


def test_validator_is_abstract():
    with pytest.raises(TypeError):
        Validator()