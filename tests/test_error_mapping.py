import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.assist import UpstreamAIError
from app.bundle import BundleError
from app.main import _build_error_payload, _normalize_upstream_http_status, _upstream_error_to_issue_and_status


class DummyErr(Exception):
    def __init__(self, message, status_code=0):
        super().__init__(message)
        self.status_code = status_code


def test_timeout_mapping():
    status, issue = _upstream_error_to_issue_and_status(DummyErr('timeout happened'), 'assist')
    assert status == 504
    assert issue.code == 'anthropic_timeout'


def test_rate_limit_mapping():
    status, issue = _upstream_error_to_issue_and_status(DummyErr('rate', 429), 'assist')
    assert status == 503
    assert issue.code == 'anthropic_rate_limited'


def test_normalize_nonstandard_529_to_503():
    assert _normalize_upstream_http_status(529) == 503
    assert _normalize_upstream_http_status(502) == 502


def test_build_error_payload_exposes_upstream_request_id():
    err = UpstreamAIError(
        step='answer',
        status_code=500,
        message='The AI service is temporarily unavailable. Try again later.',
        debug_steps=['Step answer: error_request_id=req_123ABC'],
    )
    status, payload = _build_error_payload(err, 'api_assist', 'req-1')
    assert status == 502
    assert payload['status'] == 502
    assert payload['upstream_request_id'] == 'req_123ABC'
    assert payload['trace']['request_id'] == 'req-1'
    assert payload['decision']['status'] == 'error'


def test_bundle_error_maps_to_400():
    status, payload = _build_error_payload(BundleError('Unsupported file type: a.txt'), 'api_lint')
    assert status == 400
    assert payload['issues'][0]['domain'] == 'system'
    assert 'a.txt' in payload['detail']
