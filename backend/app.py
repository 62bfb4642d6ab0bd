"""
Servidor Web para o Conversor de Sons Minecraft
API REST para conversão de resource packs Java → Bedrock (sons)
"""

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename
import os
import sys
import uuid
import shutil
import threading
import time
from pathlib import Path
from datetime import datetime
import logging

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Importa o motor de conversão
from sound_converter import SoundPackConverter, Transcoder, __version__

# Configuração
from config import Config

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Inicializa Flask
app = Flask(__name__)
app.config.from_object(Config)
CORS(app, origins=Config.CORS_ORIGINS)

# Armazenamento de jobs em memória
conversion_jobs = {}

class ConversionJob:
    """Representa um job de conversão"""

    def __init__(self, job_id: str, filename: str):
        self.job_id = job_id
        self.filename = filename
        self.status = 'queued'  # queued, processing, completed, failed
        self.progress = 0
        self.message = 'Aguardando processamento...'
        self.result_file = None
        self.error = None
        self.started_at = None
        self.completed_at = None
        self.stats = {}

    def to_dict(self):
        return {
            'job_id': self.job_id,
            'filename': self.filename,
            'status': self.status,
            'progress': self.progress,
            'message': self.message,
            'result_file': self.result_file,
            'error': self.error,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'stats': self.stats
        }


def find_job(job_id: str):
    """Retorna (job, None) ou (None, resposta 404)"""
    job = conversion_jobs.get(job_id)
    if job is None:
        return None, (jsonify({'error': 'Job não encontrado'}), 404)
    return job, None

# ============================================================================
# ROTAS DA API
# ============================================================================

@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now().isoformat(),
        'version': __version__
    })

@app.route('/api/upload', methods=['POST'])
def upload_file():
    """
    Endpoint para upload do resource pack Java (.zip)

    Returns:
        JSON com job_id para acompanhamento
    """

    # Validação do arquivo
    if 'file' not in request.files:
        return jsonify({'error': 'Nenhum arquivo enviado'}), 400

    file = request.files['file']

    if file.filename == '':
        return jsonify({'error': 'Nome de arquivo inválido'}), 400

    if not file.filename.lower().endswith('.zip'):
        return jsonify({'error': 'Apenas arquivos .zip são aceitos'}), 400

    # Validação de tamanho
    file.seek(0, os.SEEK_END)
    file_size = file.tell()
    file.seek(0)

    if file_size > app.config['MAX_FILE_SIZE']:
        return jsonify({
            'error': f'Arquivo muito grande. Máximo: {app.config["MAX_FILE_SIZE"] / (1024*1024):.0f}MB'
        }), 400

    # Gera ID único para o job
    job_id = str(uuid.uuid4())

    # Salva arquivo
    filename = secure_filename(file.filename) or 'resource_pack.zip'
    upload_path = Path(app.config['UPLOAD_FOLDER']) / job_id
    upload_path.mkdir(parents=True, exist_ok=True)

    pack_path = upload_path / filename
    file.save(pack_path)

    logger.info(f"Arquivo recebido: {filename} ({file_size / 1024:.2f} KB) - Job: {job_id}")

    # Cria job
    job = ConversionJob(job_id, filename)
    conversion_jobs[job_id] = job

    # Inicia conversão em background
    thread = threading.Thread(
        target=process_conversion,
        args=(job_id, pack_path)
    )
    thread.daemon = True
    thread.start()

    return jsonify({
        'job_id': job_id,
        'filename': filename,
        'message': 'Upload realizado com sucesso. Processamento iniciado.'
    }), 202

@app.route('/api/status/<job_id>', methods=['GET'])
def get_status(job_id):
    """Status e progresso de um job de conversão"""

    job, not_found = find_job(job_id)
    if not_found:
        return not_found

    return jsonify(job.to_dict())

@app.route('/api/download/<job_id>', methods=['GET'])
def download_result(job_id):
    """Baixa o arquivo .mcaddon resultante"""

    job, not_found = find_job(job_id)
    if not_found:
        return not_found

    if job.status != 'completed':
        return jsonify({'error': 'Conversão ainda não foi concluída'}), 400

    if not job.result_file or not os.path.exists(job.result_file):
        return jsonify({'error': 'Arquivo de resultado não encontrado'}), 404

    logger.info(f"Download iniciado - Job: {job_id}")

    return send_file(
        job.result_file,
        as_attachment=True,
        download_name=Path(job.result_file).name,
        mimetype='application/zip'
    )

@app.route('/api/jobs', methods=['GET'])
def list_jobs():
    """Lista todos os jobs (últimos 50)"""

    jobs = sorted(
        conversion_jobs.values(),
        key=lambda x: x.started_at or datetime.min,
        reverse=True
    )[:50]

    return jsonify({
        'jobs': [job.to_dict() for job in jobs],
        'total': len(conversion_jobs)
    })

# ============================================================================
# PROCESSAMENTO
# ============================================================================

def create_converter(pack_path: Path, output_dir: Path) -> SoundPackConverter:
    """Cria o conversor com as configurações do servidor"""
    transcoder = Transcoder(
        ffmpeg_binary=app.config['FFMPEG_BINARY'],
        quality=app.config['OGG_QUALITY']
    )
    return SoundPackConverter(
        input_path=str(pack_path),
        output_dir=str(output_dir),
        transcoder=transcoder,
        max_workers=app.config['MAX_TRANSCODE_WORKERS']
    )

def process_conversion(job_id: str, pack_path: Path):
    """
    Processa a conversão em background

    Args:
        job_id: ID do job
        pack_path: Caminho do resource pack enviado
    """

    job = conversion_jobs[job_id]
    job.status = 'processing'
    job.started_at = datetime.now()
    job.progress = 10
    job.message = 'Verificando pack de entrada...'

    output_dir = Path(app.config['OUTPUT_FOLDER']) / job_id
    output_dir.mkdir(parents=True, exist_ok=True)

    try:
        logger.info(f"Iniciando conversão - Job: {job_id}, Pack: {pack_path.name}")

        converter = create_converter(pack_path, output_dir)

        # Hook para atualizar progresso
        original_preflight = converter.preflight
        original_convert = converter.convert_sounds
        original_definitions = converter.write_definitions
        original_build = converter.build_addon_structure
        original_package = converter.package_mcaddon

        def preflight_with_progress():
            original_preflight()
            job.progress = 20

        def convert_with_progress():
            job.message = 'Convertendo arquivos de som...'
            original_convert()
            job.progress = 70

        def definitions_with_progress():
            job.message = 'Gerando sound_definitions.json...'
            original_definitions()
            job.progress = 80

        def build_with_progress():
            job.message = 'Montando estrutura do addon...'
            original_build()
            job.progress = 85

        def package_with_progress():
            job.message = 'Empacotando .mcaddon...'
            original_package()
            job.progress = 95

        converter.preflight = preflight_with_progress
        converter.convert_sounds = convert_with_progress
        converter.write_definitions = definitions_with_progress
        converter.build_addon_structure = build_with_progress
        converter.package_mcaddon = package_with_progress

        # Executa pipeline
        result_file = converter.run()

        if not result_file or not Path(result_file).exists():
            raise Exception('Arquivo .mcaddon não foi gerado')

        # Atualiza job
        job.status = 'completed'
        job.progress = 100
        job.message = 'Conversão concluída com sucesso!'
        job.result_file = str(result_file)
        job.completed_at = datetime.now()
        job.stats = {
            key: value for key, value in converter.stats.items() if key != 'errors'
        }
        job.stats['warnings'] = len(converter.stats['errors'])

        logger.info(f"Conversão concluída - Job: {job_id}")

        schedule_cleanup(job_id, app.config['JOB_RETENTION_SECONDS'])

    except Exception as e:
        logger.error(f"Erro na conversão - Job: {job_id} - {str(e)}", exc_info=True)

        job.status = 'failed'
        job.error = str(e)
        job.message = f'Erro: {str(e)}'
        job.completed_at = datetime.now()

        # Limpa rapidamente em caso de erro
        schedule_cleanup(job_id, app.config['FAILED_JOB_RETENTION_SECONDS'])

def schedule_cleanup(job_id: str, delay: int):
    """Agenda a limpeza do job em uma thread daemon"""
    cleanup_thread = threading.Thread(
        target=cleanup_job,
        args=(job_id, delay)
    )
    cleanup_thread.daemon = True
    cleanup_thread.start()

def cleanup_job(job_id: str, delay: int):
    """
    Limpa arquivos temporários de um job

    Args:
        job_id: ID do job
        delay: Tempo de espera em segundos
    """

    time.sleep(delay)

    logger.info(f"Limpando job: {job_id}")

    # Remove pastas
    upload_path = Path(app.config['UPLOAD_FOLDER']) / job_id
    output_path = Path(app.config['OUTPUT_FOLDER']) / job_id

    for path in [upload_path, output_path]:
        if path.exists():
            shutil.rmtree(path, ignore_errors=True)

    # Remove do dicionário
    conversion_jobs.pop(job_id, None)

# ============================================================================
# INICIALIZAÇÃO
# ============================================================================

def server_options() -> dict:
    """Parâmetros do app.run (debugger do Werkzeug só com FLASK_DEBUG=1)"""
    return {
        'host': app.config['HOST'],
        'port': int(app.config['PORT']),
        'debug': bool(app.config['DEBUG'])
    }

if __name__ == '__main__':
    # Cria pastas necessárias
    Path(app.config['UPLOAD_FOLDER']).mkdir(parents=True, exist_ok=True)
    Path(app.config['OUTPUT_FOLDER']).mkdir(parents=True, exist_ok=True)

    app.run(**server_options())
