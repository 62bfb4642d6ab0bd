"""
Fixtures compartilhadas: packs Java de teste e conversor de áudio falso
"""

import json
import shutil
import threading
import zipfile
from pathlib import Path

import pytest


class CopyTranscoder:
    """Substitui o ffmpeg: copia os bytes do arquivo de origem"""

    def __init__(self, ffmpeg_binary='ffmpeg', quality=4, available=True, fail_on=()):
        self.ffmpeg_binary = ffmpeg_binary
        self.quality = quality
        self.available = available
        self.fail_on = set(fail_on)
        self.calls = []
        self._lock = threading.Lock()

    def is_available(self):
        return self.available

    def transcode(self, source_file, output_file):
        with self._lock:
            self.calls.append((Path(source_file), Path(output_file)))

        if Path(source_file).name in self.fail_on:
            return False

        output_file.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_file, output_file)
        return True


class JavaPack:
    """Monta um resource pack Java em disco"""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def mcmeta(self, description="Pack de teste"):
        data = {"pack": {"pack_format": 15, "description": description}}
        (self.root / 'pack.mcmeta').write_text(json.dumps(data), encoding='utf-8')

    def sounds(self, namespace, declarations):
        path = self.root / 'assets' / namespace / 'sounds.json'
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(declarations), encoding='utf-8')
        return path

    def audio(self, relative):
        """Cria assets/<relative> com conteúdo fictício"""
        path = self.root / 'assets' / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b'OggS fake audio ' + relative.encode())
        return path

    def zip(self, target: Path) -> Path:
        with zipfile.ZipFile(target, 'w') as archive:
            for file in sorted(self.root.rglob('*')):
                if file.is_file():
                    archive.write(file, file.relative_to(self.root).as_posix())
        return target


@pytest.fixture
def java_pack(tmp_path):
    pack = JavaPack(tmp_path / 'pack')
    pack.mcmeta()
    return pack


@pytest.fixture
def transcoder():
    return CopyTranscoder()


@pytest.fixture
def transcoder_class():
    return CopyTranscoder
