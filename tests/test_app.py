"""
Testes da API REST
"""

import importlib
import io
import zipfile

import pytest

import backend.app as app_module
from backend.app import ConversionJob, app, conversion_jobs


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setitem(app.config, 'UPLOAD_FOLDER', str(tmp_path / 'uploads'))
    monkeypatch.setitem(app.config, 'OUTPUT_FOLDER', str(tmp_path / 'outputs'))
    app.config['TESTING'] = True
    conversion_jobs.clear()

    with app.test_client() as client:
        yield client

    conversion_jobs.clear()


@pytest.fixture
def cleanups(monkeypatch):
    scheduled = []
    monkeypatch.setattr(app_module, 'schedule_cleanup', lambda job_id, delay: scheduled.append((job_id, delay)))
    return scheduled


def test_health(client):
    response = client.get('/api/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_upload_requires_file(client):
    response = client.post('/api/upload')

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Nenhum arquivo enviado'


def test_upload_rejects_non_zip(client):
    data = {'file': (io.BytesIO(b'data'), 'mod.jar')}
    response = client.post('/api/upload', data=data, content_type='multipart/form-data')

    assert response.status_code == 400


def test_upload_rejects_large_file(client, monkeypatch):
    monkeypatch.setitem(app.config, 'MAX_FILE_SIZE', 10)
    data = {'file': (io.BytesIO(b'x' * 20), 'pack.zip')}

    response = client.post('/api/upload', data=data, content_type='multipart/form-data')

    assert response.status_code == 400
    assert 'muito grande' in response.get_json()['error']


def test_upload_starts_job(client, monkeypatch, tmp_path):
    started = []
    monkeypatch.setattr(app_module, 'process_conversion', lambda job_id, path: started.append((job_id, path)))
    data = {'file': (io.BytesIO(b'PK fake'), 'My Pack.zip')}

    response = client.post('/api/upload', data=data, content_type='multipart/form-data')

    assert response.status_code == 202
    body = response.get_json()
    assert body['filename'] == 'My_Pack.zip'
    assert body['job_id'] in conversion_jobs
    assert (tmp_path / 'uploads' / body['job_id'] / 'My_Pack.zip').is_file()


def test_status_and_download_unknown_job(client):
    for url in ('/api/status/nope', '/api/download/nope'):
        response = client.get(url)

        assert response.status_code == 404
        assert response.get_json() == {'error': 'Job não encontrado'}


def test_status_of_known_job(client):
    conversion_jobs['job'] = ConversionJob('job', 'pack.zip')

    body = client.get('/api/status/job').get_json()

    assert body['job_id'] == 'job'
    assert body['status'] == 'queued'


def test_download_before_completion(client):
    conversion_jobs['job'] = ConversionJob('job', 'pack.zip')

    assert client.get('/api/download/job').status_code == 400


def test_process_conversion_completes(client, monkeypatch, cleanups, java_pack, transcoder_class, tmp_path):
    monkeypatch.setattr(app_module, 'Transcoder', transcoder_class)
    java_pack.sounds("footsteps", {"step": {"sounds": ["walk"]}})
    java_pack.audio("footsteps/sounds/walk.ogg")
    zip_path = java_pack.zip(tmp_path / 'pack.zip')

    conversion_jobs['job'] = ConversionJob('job', 'pack.zip')
    app_module.process_conversion('job', zip_path)

    job = conversion_jobs['job']
    assert job.status == 'completed', job.error
    assert job.progress == 100
    assert job.stats['events_generated'] == 1
    assert cleanups == [('job', app.config['JOB_RETENTION_SECONDS'])]

    response = client.get('/api/download/job')
    assert response.status_code == 200
    with zipfile.ZipFile(io.BytesIO(response.data)) as addon:
        assert 'geyser_sound.mcpack' in addon.namelist()

    listing = client.get('/api/jobs').get_json()
    assert listing['total'] == 1
    assert listing['jobs'][0]['status'] == 'completed'


def test_process_conversion_fails_without_sounds(client, monkeypatch, cleanups, java_pack, transcoder_class, tmp_path):
    monkeypatch.setattr(app_module, 'Transcoder', transcoder_class)
    zip_path = java_pack.zip(tmp_path / 'pack.zip')

    conversion_jobs['job'] = ConversionJob('job', 'pack.zip')
    app_module.process_conversion('job', zip_path)

    job = conversion_jobs['job']
    assert job.status == 'failed'
    assert 'CRITICAL' in job.error
    assert cleanups == [('job', app.config['FAILED_JOB_RETENTION_SECONDS'])]


def test_cleanup_job_removes_files(client, tmp_path):
    conversion_jobs['job'] = ConversionJob('job', 'pack.zip')
    upload = tmp_path / 'uploads' / 'job'
    output = tmp_path / 'outputs' / 'job'
    upload.mkdir(parents=True)
    output.mkdir(parents=True)

    app_module.cleanup_job('job', 0)

    assert not upload.exists()
    assert not output.exists()
    assert 'job' not in conversion_jobs


def test_server_options_read_port_and_debug_from_config(monkeypatch):
    monkeypatch.setitem(app.config, 'PORT', '8081')
    monkeypatch.setitem(app.config, 'DEBUG', False)

    assert app_module.server_options() == {'host': app.config['HOST'], 'port': 8081, 'debug': False}


def test_config_reads_port_and_debug_from_environment(monkeypatch):
    config = importlib.import_module('config')

    with monkeypatch.context() as env:
        env.setenv('PORT', '8082')
        env.delenv('FLASK_DEBUG', raising=False)
        importlib.reload(config)
        assert config.Config.PORT == 8082
        assert config.Config.DEBUG is False

        env.setenv('FLASK_DEBUG', '1')
        importlib.reload(config)
        assert config.Config.DEBUG is True

    importlib.reload(config)
