import json

from linearsync.logging import StructuredLogger, configure_logging, get_logger


def test_structured_logger_json_format(capsys):
    logger = StructuredLogger(name='test-json', json_logging=True, level='INFO')
    logger.log_operation('collect_complete', collected=3, partial=False)

    lines = [line for line in capsys.readouterr().out.strip().split('\n') if line]
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry['level'] == 'INFO'
    assert entry['operation'] == 'collect_complete'
    assert entry['collected'] == 3
    assert 'timestamp' in entry


def test_log_update_marks_dry_run(capsys):
    logger = StructuredLogger(name='test-update', json_logging=True)
    logger.log_update('ENG-1 priority 0 -> 1', 'lin-1', 'priority', dry_run=True, issue_number=42)

    entry = json.loads(capsys.readouterr().out.strip())
    assert entry['message'] == 'updated ENG-1 priority 0 -> 1 [DRY]'
    assert entry['destination_id'] == 'lin-1'
    assert entry['field'] == 'priority'
    assert entry['issue_number'] == 42


def test_log_error_includes_error_field(capsys):
    logger = StructuredLogger(name='test-error', json_logging=True)
    logger.log_error('failed to update ENG-1', error='HTTP 500', operation='update_priority')

    entry = json.loads(capsys.readouterr().out.strip())
    assert entry['level'] == 'ERROR'
    assert entry['error'] == 'HTTP 500'


def test_plain_text_format(capsys):
    logger = StructuredLogger(name='test-text', json_logging=False, level='DEBUG')
    logger.debug('resolved alice', handle='alice')
    out = capsys.readouterr().out
    assert 'DEBUG resolved alice' in out


def test_level_filters_messages(capsys):
    logger = StructuredLogger(name='test-level', level='WARNING')
    logger.info('hidden')
    logger.warning('shown')
    out = capsys.readouterr().out
    assert 'hidden' not in out
    assert 'shown' in out


def test_timed_operation_logs_duration(capsys):
    logger = StructuredLogger(name='test-timed', json_logging=True)
    with logger.timed_operation('collect', field='priority'):
        pass

    entries = [json.loads(line) for line in capsys.readouterr().out.strip().split('\n')]
    assert entries[0]['operation'] == 'collect_start'
    assert entries[1]['operation'] == 'collect'
    assert 'duration_ms' in entries[1]


def test_configure_logging_replaces_global():
    configured = configure_logging(json_logging=True, level='DEBUG')
    assert get_logger() is configured
