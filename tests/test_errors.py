from __future__ import annotations

from linearsync.errors import TeamNotFoundError, TransportError, classify_error, redact


def test_classify_rate_limit_by_status():
    info = classify_error(TransportError('Too many', status=429))
    assert info.category == 'rate_limit'
    assert info.transient is True


def test_classify_rate_limit_by_message():
    assert classify_error(RuntimeError('API Rate Limit Exceeded')).category == 'rate_limit'


def test_classify_auth():
    assert classify_error(TransportError('Bad credentials', status=401)).category == 'auth'


def test_classify_not_found():
    info = classify_error(TransportError('Linear GraphQL error: Entity not found', status=400))
    assert info.category == 'not_found'
    assert info.transient is False


def test_classify_server_error_is_transient():
    info = classify_error(TransportError('GitHub API GET /x failed with 502', status=502))
    assert info.category == 'network'
    assert info.transient is True


def test_classify_network():
    info = classify_error(RuntimeError('Connection reset by peer'))
    assert info.category == 'network'
    assert info.transient is True


def test_classify_validation():
    assert classify_error(TransportError('Argument Validation Error', status=400)).category == 'validation'


def test_classify_generic():
    assert classify_error(ValueError('Some other problem')).category == 'generic'


def test_redact_tokens():
    sample = (
        "Token ghp_ABCDEFGHIJKLMNOPQRSTUVWX plus github_pat_1234567890abcdefghijkl "
        "and lin_api_abcdefghijklmnopqrstuvwxyz"
    )
    out = redact(sample)
    assert 'ghp_' not in out
    assert 'github_pat_' not in out
    assert 'lin_api_' not in out
    assert out.count('<redacted>') == 3


def test_redact_authorization_header():
    out = redact('headers: Authorization: Bearer abc.def')
    assert 'abc.def' not in out
    assert 'Authorization: <redacted>' in out


def test_classified_messages_are_redacted():
    info = classify_error(TransportError('auth failed for ghp_ABCDEFGHIJKLMNOPQRSTUVWX', status=401))
    assert 'ghp_' not in info.message


def test_team_not_found_message():
    exc = TeamNotFoundError('Design', ['Engineering (ENG)', 'Platform (PLT)'])
    assert str(exc) == (
        "Linear team 'Design' not found. Available teams: Engineering (ENG), Platform (PLT)"
    )
    assert str(TeamNotFoundError('X', [])).endswith('Available teams: none')
