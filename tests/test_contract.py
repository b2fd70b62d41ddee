import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.issues import build_decision, build_trace, from_checks, make_upstream_issue
from app.schemas import CheckIssue


def test_contract_issue_and_decision_and_trace():
    checks = [
        CheckIssue(level='warn', code='mode_empty', file='a.mode.json', message='empty', check_id='MODE-004'),
        CheckIssue(level='error', code='section_missing', file='memory.md', field='testing', message='no section', check_id='DOC-003'),
    ]

    issues = from_checks(checks)
    decision = build_decision(issues)
    trace = build_trace('req-1', {'total_ms': 100}, {})

    assert [i.category for i in issues] == ['mode', 'docs']
    assert issues[1].details == {'check_id': 'DOC-003'}
    assert issues[1].hint
    assert decision.status == 'error'
    assert decision.needs_fix is True
    assert trace.request_id == 'req-1'


def test_warn_only_needs_fix_only_when_strict():
    issues = from_checks([CheckIssue(level='warn', code='rules_empty', message='empty')])
    assert build_decision(issues).needs_fix is False
    assert build_decision(issues, strict=True).needs_fix is True
    assert build_decision(issues).status == 'warn'


def test_info_only_is_ok():
    issues = from_checks([CheckIssue(level='info', code='rule_id_reused_across_categories', message='reused')])
    decision = build_decision(issues)
    assert decision.status == 'ok'
    assert issues[0].hint is None
    assert build_decision([]).summary == 'No problems found.'


def test_decision_marks_upstream_errors_as_error():
    issue = make_upstream_issue(code='anthropic_timeout', category='timeouts', message='timeout')
    decision = build_decision([issue])
    assert decision.status == 'error'
    assert decision.needs_fix is True
