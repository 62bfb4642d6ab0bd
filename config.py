"""
Configurações do servidor e do conversor de sons
"""

import os

class Config:
    """Configuração principal"""

    # Pastas
    UPLOAD_FOLDER = os.path.join(os.path.dirname(__file__), 'uploads')
    OUTPUT_FOLDER = os.path.join(os.path.dirname(__file__), 'outputs')

    # Limites
    MAX_FILE_SIZE = 100 * 1024 * 1024  # 100 MB

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'

    # Servidor
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', 5000))

    # CORS
    CORS_ORIGINS = ['http://localhost:3000', 'http://127.0.0.1:3000']

    # Conversão de áudio
    FFMPEG_BINARY = os.environ.get('FFMPEG_BINARY', 'ffmpeg')
    OGG_QUALITY = int(os.environ.get('OGG_QUALITY', '4'))
    MAX_TRANSCODE_WORKERS = None  # None = 2x núcleos de CPU

    # Limpeza de jobs (segundos)
    JOB_RETENTION_SECONDS = 3600
    FAILED_JOB_RETENTION_SECONDS = 60
