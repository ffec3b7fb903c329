"""Environment loading and configuration helpers."""
import os
import subprocess
import sys

import libdesk
from libdesk.config.config import load_environment, parse_duration

PACKAGE_PARENT = os.path.dirname(os.path.dirname(os.path.abspath(libdesk.__file__)))


def test_env_file_in_working_directory_is_loaded(tmp_path, monkeypatch):
    (tmp_path / '.env').write_text('LIBDESK_SAMPLE_VALUE=from-cwd\n', encoding='utf-8')
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv('LIBDESK_SAMPLE_VALUE', raising=False)

    load_environment()

    assert os.environ['LIBDESK_SAMPLE_VALUE'] == 'from-cwd'
    monkeypatch.delenv('LIBDESK_SAMPLE_VALUE')


def test_existing_variables_win_over_env_file(tmp_path, monkeypatch):
    (tmp_path / '.env').write_text('LIBDESK_SAMPLE_VALUE=from-file\n', encoding='utf-8')
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('LIBDESK_SAMPLE_VALUE', 'from-shell')

    load_environment()

    assert os.environ['LIBDESK_SAMPLE_VALUE'] == 'from-shell'


def test_server_started_elsewhere_reads_its_own_env_file(tmp_path):
    (tmp_path / '.env').write_text('JWT_SECRET=from-cwd-env\n', encoding='utf-8')
    env = {key: value for key, value in os.environ.items() if key != 'JWT_SECRET'}
    env['PYTHONPATH'] = os.pathsep.join(filter(None, [PACKAGE_PARENT, env.get('PYTHONPATH')]))

    result = subprocess.run(
        [sys.executable, '-c',
         'from libdesk.config.config import Config; print(Config.JWT_SECRET)'],
        cwd=str(tmp_path), env=env, capture_output=True, text=True, timeout=60,
    )

    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == 'from-cwd-env'


def test_parse_duration():
    assert parse_duration('1h') == 3600
    assert parse_duration('30m') == 1800
    assert parse_duration('90') == 90
    assert parse_duration('soon', default=60) == 60
