import logging

from models import BuildResult
from payload.builder import build_payload
from runs.environment import EnvironmentRun, relative_url

ENV = {
    'JENKINS_URL': 'https://ci.example.com/',
    'JOB_NAME': 'folder/api',
    'JOB_URL': 'https://ci.example.com/job/folder/job/api/',
    'BUILD_NUMBER': '17',
    'BUILD_URL': 'https://ci.example.com/job/folder/job/api/17/',
    'BUILD_START_TIME': '1725957396354',
    'GIT_BRANCH': 'origin/dev',
    'GIT_COMMIT': 'b25947ba',
}


def test_relative_url():
    assert relative_url('https://ci/job/a/1/', 'https://ci') == 'job/a/1/'
    assert relative_url('https://ci/job/a/1/', 'https://ci/') == 'job/a/1/'
    assert relative_url('https://other/job/a/1/', 'https://ci/') == 'https://other/job/a/1/'
    assert relative_url('', 'https://ci/') == ''


def test_metadata_from_environment():
    run = EnvironmentRun(ENV, BuildResult.FAILURE)
    assert run.job_name == 'folder/api'
    assert run.job_url == 'job/folder/job/api/'
    assert run.number == 17
    assert run.url == 'job/folder/job/api/17/'
    assert run.start_time_ms == 1725957396354
    assert run.get_previous_build() is None
    assert run.get_previous_successful_build() is None


def test_log_file_is_read(tmp_path):
    log = tmp_path / 'console.log'
    log.write_text('one\ntwo\n', encoding='utf-8')
    run = EnvironmentRun(ENV, BuildResult.SUCCESS, log_file=str(log))
    assert run.get_log_text() == 'one\ntwo\n'


def test_payload_has_no_change_log(tmp_path):
    run = EnvironmentRun(ENV, BuildResult.FAILURE)
    doc = build_payload(run, now_ms=1725957486343).to_dict()
    assert doc['job']['logs'] == ['']
    assert doc['job']['duration'] == 90
    assert doc['source']['branch'] == 'origin/dev'
    assert 'changeLog' not in doc['source']


def test_missing_start_time_is_logged(caplog):
    env = {k: v for k, v in ENV.items() if k != 'BUILD_START_TIME'}
    with caplog.at_level(logging.INFO, logger='runs.environment'):
        run = EnvironmentRun(env, BuildResult.SUCCESS)
    assert run.start_time_ms > 0
    assert 'BUILD_START_TIME not set' in caplog.text
