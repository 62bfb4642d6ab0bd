# sound_converter.py
"""
Motor de Conversão de Sons: Minecraft Java Edition → Bedrock Edition
Converte os sounds.json e arquivos de áudio de um resource pack Java em
sound_definitions.json + arquivos .ogg de um resource pack Bedrock.
Versão: 1.0.0
"""

import json
import logging
import os
import re
import shutil
import subprocess
import threading
import uuid
import zipfile
from collections import defaultdict
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

__version__ = '1.0.0'

logger = logging.getLogger(__name__)

# ============================================================================
# CONSTANTES
# ============================================================================

VANILLA_NAMESPACE = 'minecraft'

# Ordem de busca fixa
AUDIO_EXTENSIONS = ('.ogg', '.wav', '.mp3')

SOUNDS_SUFFIX = '_sounds'
SUFFIX_DEPTH_THRESHOLD = 3

SOUND_DEFINITIONS_FORMAT_VERSION = '1.14.0'
SOUND_CATEGORY = 'master'

DEFAULT_OGG_QUALITY = 4

NAMESPACE_PATTERN = re.compile(r'^[a-z0-9_.-]+$')

RP_PACK_NAME = 'Converted Java Sound Pack (geyser_sound)'
BP_PACK_NAME = 'Converted Sound BP (Empty)'
BP_PACK_DESCRIPTION = 'Minimal Behavior Pack for Sound Conversion'
DEFAULT_PACK_DESCRIPTION = 'Converted Java Sound Resource Pack'
PACK_VERSION = [1, 0, 0]
MIN_ENGINE_VERSION = [1, 18, 3]

SOUND_PACK_FILENAME = 'geyser_sound.mcpack'
BEHAVIOR_PACK_FILENAME = 'geyser_behavior.mcpack'
ADDON_FILENAME = 'geyser_addon.mcaddon'

# ============================================================================
# EXCEÇÕES
# ============================================================================

class ConversionError(Exception):
    """Erro fatal de conversão"""


class MissingDependencyError(ConversionError):
    """Ferramenta externa obrigatória ausente (ffmpeg)"""


class PackValidationError(ConversionError):
    """Pack de entrada inválido (pack.mcmeta ausente ou malformado)"""


class NoSoundsProcessedError(ConversionError):
    """Nenhum som foi resolvido e convertido com sucesso"""

# ============================================================================
# ESTRUTURAS DE DADOS
# ============================================================================

@dataclass
class SoundDeclaration:
    """Uma referência de som declarada em um sounds.json"""
    origin_namespace: str
    event_key: str
    sound_reference: str
    document: Optional[Path] = None

@dataclass
class ResolvedAsset:
    """Resultado da busca do arquivo de áudio de uma declaração"""
    search_namespace: str
    relative_path: str
    source_file: Optional[Path] = None
    vanilla_tree: bool = False  # arquivo encontrado em assets/minecraft/sounds
    searched: List[Path] = field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return self.source_file is not None

@dataclass
class BedrockSoundEvent:
    """Evento de som mapeado para o formato Bedrock"""
    event_key: str
    output_asset_path: str
    source_file: Path
    output_file: Path
    origin_namespace: str = ""
    suffixed: bool = False


def new_stats() -> Dict[str, Any]:
    """Estatísticas de uma execução"""
    return {
        'documents_scanned': 0,
        'documents_skipped': 0,
        'declarations_found': 0,
        'sounds_resolved': 0,
        'sounds_unresolved': 0,
        'files_transcoded': 0,
        'transcode_failures': 0,
        'events_generated': 0,
        'errors': []
    }


def _warn(stats: Optional[Dict[str, Any]], message: str):
    logger.warning(message)
    if stats is not None:
        stats['errors'].append(message)


def save_json(data: Dict, path: Path):
    """Salva JSON formatado"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

# ============================================================================
# LEITURA DOS sounds.json
# ============================================================================

class DeclarationScanner:
    """Enumera as declarações de som de todos os sounds.json do pack"""

    def __init__(self, pack_root: Path, stats: Optional[Dict[str, Any]] = None):
        self.pack_root = Path(pack_root)
        self.assets_root = self.pack_root / 'assets'
        self.stats = stats if stats is not None else new_stats()

    def scan(self) -> Iterator[SoundDeclaration]:
        """
        Percorre assets/<namespace>/sounds.json e gera uma declaração por
        entrada da lista 'sounds' de cada chave.

        Cada chamada faz uma nova varredura.
        """
        if not self.assets_root.is_dir():
            _warn(self.stats, f"Pasta assets/ não encontrada em {self.pack_root}")
            return

        for document in sorted(self.assets_root.rglob('sounds.json')):
            if not document.is_file():
                continue

            namespace = self._namespace_of(document)

            if namespace == VANILLA_NAMESPACE:
                logger.info(f"Ignorando sounds.json vanilla: {document}")
                self.stats['documents_skipped'] += 1
                continue

            if not namespace:
                _warn(self.stats, f"Aviso: não foi possível determinar o namespace do sounds.json em {document}. Ignorando.")
                self.stats['documents_skipped'] += 1
                continue

            data = self._load_document(document)
            if data is None:
                self.stats['documents_skipped'] += 1
                continue

            self.stats['documents_scanned'] += 1

            for event_key, event in data.items():
                for reference in self._sound_references(document, event_key, event):
                    self.stats['declarations_found'] += 1
                    yield SoundDeclaration(
                        origin_namespace=namespace,
                        event_key=event_key,
                        sound_reference=reference,
                        document=document
                    )

    def _namespace_of(self, document: Path) -> Optional[str]:
        """Namespace = pasta que contém o sounds.json (assets/<ns>/sounds.json)"""
        parts = document.relative_to(self.assets_root).parts
        if len(parts) != 2:
            return None

        namespace = parts[0]
        if not NAMESPACE_PATTERN.match(namespace) or namespace in ('.', '..'):
            return None

        return namespace

    def _load_document(self, document: Path) -> Optional[Dict[str, Any]]:
        try:
            data = json.loads(document.read_text(encoding='utf-8-sig'))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            _warn(self.stats, f"Aviso: sounds.json ilegível em {document}: {e}. Ignorando.")
            return None

        if not isinstance(data, dict):
            _warn(self.stats, f"Aviso: sounds.json em {document} não é um objeto JSON. Ignorando.")
            return None

        return data

    def _sound_references(self, document: Path, event_key: str, event: Any) -> Iterator[str]:
        """Normaliza entradas "nome" e {"name": "nome"} para a mesma string"""
        if not isinstance(event, dict):
            _warn(self.stats, f"Aviso: evento {event_key} em {document} não é um objeto. Ignorando.")
            return

        sounds = event.get('sounds')
        if sounds is None:
            logger.debug(f"Evento {event_key} em {document} não tem lista 'sounds'")
            return

        if not isinstance(sounds, list):
            _warn(self.stats, f"Aviso: 'sounds' do evento {event_key} em {document} não é uma lista. Ignorando.")
            return

        for entry in sounds:
            if isinstance(entry, str):
                yield entry
            elif isinstance(entry, dict) and isinstance(entry.get('name'), str):
                yield entry['name']
            else:
                _warn(self.stats, f"Aviso: entrada de som inválida no evento {event_key} em {document}: {entry!r}. Ignorando.")

# ============================================================================
# RESOLUÇÃO DE ARQUIVOS DE ÁUDIO
# ============================================================================

class AssetResolver:
    """Localiza o arquivo de áudio físico de cada declaração"""

    def __init__(self, pack_root: Path, stats: Optional[Dict[str, Any]] = None):
        self.pack_root = Path(pack_root)
        self.assets_root = self.pack_root / 'assets'
        self.stats = stats

    @staticmethod
    def split_reference(reference: str, origin_namespace: str) -> Tuple[str, str]:
        """'ns:caminho' → (ns, caminho); 'caminho' → (namespace de origem, caminho)"""
        namespace, separator, path = reference.partition(':')

        if not separator:
            return origin_namespace, reference

        if not namespace:
            return origin_namespace, path

        return namespace, path

    @staticmethod
    def strip_namespace_prefix(path: str, namespace: str) -> str:
        """Remove o prefixo redundante '<namespace>/' (ex.: 'archer:archer/samus/x')"""
        prefix = f"{namespace}/"

        if namespace != VANILLA_NAMESPACE and path.startswith(prefix):
            return path[len(prefix):]

        return path

    @staticmethod
    def _is_safe(namespace: str, relative_path: str) -> bool:
        if not namespace or '/' in namespace or '\\' in namespace or namespace in ('.', '..'):
            return False
        if relative_path.startswith('/') or '\\' in relative_path:
            return False
        return '..' not in relative_path.split('/')

    def resolve(self, declaration: SoundDeclaration) -> ResolvedAsset:
        """
        Resolve a referência de som para um arquivo existente.

        Nunca lança exceção: se o arquivo não for encontrado, retorna um
        ResolvedAsset sem source_file e registra um aviso.
        """
        search_namespace, candidate = self.split_reference(
            declaration.sound_reference, declaration.origin_namespace
        )
        relative_path = self.strip_namespace_prefix(candidate, search_namespace)

        # Referência já com extensão (ex.: "walk.wav"): testa essa extensão primeiro
        extensions = AUDIO_EXTENSIONS
        explicit_ext = PurePosixPath(relative_path).suffix
        if explicit_ext.lower() in AUDIO_EXTENSIONS:
            relative_path = relative_path[:-len(explicit_ext)]
            # Sufixo exato primeiro ("walk.WAV" existe como está em sistemas case-sensitive)
            extensions = tuple(dict.fromkeys((explicit_ext, explicit_ext.lower()) + AUDIO_EXTENSIONS))

        asset = ResolvedAsset(search_namespace=search_namespace, relative_path=relative_path)

        if not relative_path:
            _warn(self.stats, f"Aviso: caminho vazio para a chave {declaration.event_key} ({declaration.document}). Ignorando.")
            return asset

        if not self._is_safe(search_namespace, relative_path):
            _warn(self.stats, f"Aviso: caminho inválido '{declaration.sound_reference}' para a chave {declaration.event_key}. Ignorando.")
            return asset

        for namespace in (search_namespace, VANILLA_NAMESPACE):
            base_path = self.assets_root / namespace / 'sounds' / relative_path
            asset.searched.append(base_path)

            for ext in extensions:
                candidate_file = Path(f"{base_path}{ext}")
                if candidate_file.is_file():
                    asset.source_file = candidate_file
                    asset.vanilla_tree = namespace == VANILLA_NAMESPACE
                    return asset

        _warn(
            self.stats,
            f"Aviso: arquivo de som não encontrado. Caminhos base pesquisados: "
            f"1) {asset.searched[0]}.* 2) {asset.searched[1]}.* "
            f"(Chave: {search_namespace}:{declaration.event_key})"
        )
        return asset

# ============================================================================
# POLÍTICA DE SUFIXO DE NAMESPACE
# ============================================================================

class NamespaceSuffixPolicy:
    """Decide se o namespace Bedrock recebe o sufixo '_sounds'"""

    @staticmethod
    def path_depth(relative_path: str) -> int:
        return len(relative_path.split('/'))

    @staticmethod
    def needs_suffix(origin_namespace: str, relative_path: str, vanilla_tree: bool) -> bool:
        depth = NamespaceSuffixPolicy.path_depth(relative_path)

        # Regra 1: assets vanilla nunca mudam de namespace
        if origin_namespace == VANILLA_NAMESPACE or vanilla_tree:
            logger.debug(f"Regra 1: namespace vanilla ou asset na árvore vanilla (profundidade {depth}). Sem sufixo.")
            return False

        # Regra 2: namespace customizado, decide pela profundidade
        if depth >= SUFFIX_DEPTH_THRESHOLD:
            logger.debug(f"Regra 2: profundidade {depth} >= {SUFFIX_DEPTH_THRESHOLD}. Adicionando sufixo a '{origin_namespace}'.")
            return True

        logger.debug(f"Regra 2: profundidade {depth} < {SUFFIX_DEPTH_THRESHOLD}. Sem sufixo para '{origin_namespace}'.")
        return False

    @staticmethod
    def apply_suffix(namespace: str) -> str:
        if namespace.endswith(SOUNDS_SUFFIX):
            return namespace
        return f"{namespace}{SOUNDS_SUFFIX}"

    @classmethod
    def target_namespace(cls, origin_namespace: str, relative_path: str, vanilla_tree: bool) -> str:
        if cls.needs_suffix(origin_namespace, relative_path, vanilla_tree):
            return cls.apply_suffix(origin_namespace)
        return origin_namespace

# ============================================================================
# CHAVES E CAMINHOS BEDROCK
# ============================================================================

class KeyPathBuilder:
    """Monta a chave do evento Bedrock e o caminho do asset de saída"""

    def __init__(self, rp_root: Path):
        self.rp_root = Path(rp_root)

    def build(self, declaration: SoundDeclaration, asset: ResolvedAsset) -> BedrockSoundEvent:
        """
        A chave usa o namespace com sufixo; o caminho usa o namespace de
        origem sem sufixo (a árvore de saída espelha a de entrada).
        """
        if not asset.is_resolved:
            raise ValueError(f"Asset não resolvido para a chave {declaration.event_key}")

        origin = declaration.origin_namespace
        namespace = NamespaceSuffixPolicy.target_namespace(origin, asset.relative_path, asset.vanilla_tree)

        # Chave Java mantida literalmente
        event_key = f"{namespace}:{declaration.event_key}"
        output_asset_path = f"sounds/{origin}/sounds/{asset.relative_path}"

        return BedrockSoundEvent(
            event_key=event_key,
            output_asset_path=output_asset_path,
            source_file=asset.source_file,
            output_file=self.rp_root / f"{output_asset_path}.ogg",
            origin_namespace=origin,
            suffixed=namespace != origin
        )

# ============================================================================
# AGREGAÇÃO DO sound_definitions.json
# ============================================================================

class DefinitionAggregator:
    """Agrupa os pares (chave, caminho) no documento sound_definitions.json"""

    def __init__(self):
        self._lock = threading.Lock()
        self._groups: Dict[str, Set[str]] = defaultdict(set)

    def add(self, event_key: str, asset_path: str):
        with self._lock:
            self._groups[event_key].add(asset_path)

    def __len__(self) -> int:
        with self._lock:
            return len(self._groups)

    def build(self) -> Dict[str, Any]:
        with self._lock:
            if not self._groups:
                raise NoSoundsProcessedError(
                    "CRITICAL: Nenhum arquivo de som foi processado com sucesso. "
                    "Verifique nomes e caminhos no pack de entrada (detalhes no debug.log)."
                )

            definitions = {
                event_key: {
                    "category": SOUND_CATEGORY,
                    "sounds": sorted(paths)
                }
                for event_key, paths in sorted(self._groups.items())
            }

        return {
            "format_version": SOUND_DEFINITIONS_FORMAT_VERSION,
            "sound_definitions": definitions
        }

# ============================================================================
# CONVERSÃO DE ÁUDIO (FFMPEG)
# ============================================================================

class Transcoder:
    """Converte arquivos de áudio para Ogg Vorbis usando ffmpeg"""

    def __init__(self, ffmpeg_binary: str = 'ffmpeg', quality: int = DEFAULT_OGG_QUALITY):
        self.ffmpeg_binary = ffmpeg_binary
        self.quality = quality

    def is_available(self) -> bool:
        """Verifica se o ffmpeg está instalado"""
        try:
            result = subprocess.run(
                [self.ffmpeg_binary, '-version'], capture_output=True, text=True, errors='replace'
            )
        except OSError:
            return False
        return result.returncode == 0 and 'ffmpeg version' in result.stdout

    def transcode(self, source_file: Path, output_file: Path) -> bool:
        """Converte source_file para output_file (libvorbis, qualidade fixa)"""
        cmd = [
            self.ffmpeg_binary,
            '-y',
            '-loglevel', 'error',
            '-i', str(source_file),
            '-map', '0:a',
            '-c:a', 'libvorbis',
            '-q:a', str(self.quality),
            str(output_file)
        ]

        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            result = subprocess.run(cmd, capture_output=True, text=True, errors='replace')
        except OSError as e:
            logger.warning(f"Falha ao executar ffmpeg para {source_file}: {e}")
            return False

        if result.returncode != 0:
            logger.warning(f"ffmpeg falhou ({result.returncode}) para {source_file}: {result.stderr.strip()[-200:]}")
            return False

        return True


class TranscodeDispatcher:
    """
    Despacha conversões com concorrência limitada.

    No máximo max_workers conversões admitidas ao mesmo tempo (padrão: 2x
    núcleos de CPU); submit() bloqueia até uma vaga ser liberada. join() é a
    barreira que espera todo o trabalho admitido.
    """

    def __init__(self, transcoder: Transcoder, max_workers: Optional[int] = None):
        if max_workers is None:
            max_workers = 2 * (os.cpu_count() or 1)
        if max_workers < 1:
            raise ValueError(f"max_workers deve ser >= 1 (recebido {max_workers})")

        self.transcoder = transcoder
        self.max_workers = max_workers

        self._slots = threading.BoundedSemaphore(max_workers)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='transcode')
        self._submit_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._scheduled: Dict[Path, Tuple[Path, Future]] = {}

        self.transcoded = 0
        self.failed = 0
        self.failures: List[str] = []

    def submit(self, event: BedrockSoundEvent,
               on_success: Optional[Callable[[BedrockSoundEvent], None]] = None) -> Future:
        """Agenda a conversão do evento; cada arquivo de saída é convertido uma única vez"""
        with self._submit_lock:
            scheduled = self._scheduled.get(event.output_file)

            if scheduled is None:
                self._slots.acquire()
                try:
                    future = self._executor.submit(self._run, event.source_file, event.output_file)
                except BaseException:
                    self._slots.release()
                    raise
                self._scheduled[event.output_file] = (event.source_file, future)
            else:
                source_file, future = scheduled
                if source_file != event.source_file:
                    logger.warning(
                        f"Saída {event.output_file} já agendada a partir de {source_file}; "
                        f"{event.source_file} não será convertido"
                    )

        if on_success is not None:
            def _notify(done: Future):
                if done.result():
                    on_success(event)

            future.add_done_callback(_notify)

        return future

    def _run(self, source_file: Path, output_file: Path) -> bool:
        success = False
        try:
            success = bool(self.transcoder.transcode(source_file, output_file))
        except Exception as e:
            logger.error(f"Erro ao converter {source_file}: {e}", exc_info=True)
        finally:
            self._slots.release()

        with self._stats_lock:
            if success:
                self.transcoded += 1
            else:
                self.failed += 1
                self.failures.append(f"Aviso: falha ao converter {source_file} -> {output_file}")

        return success

    def join(self):
        """Espera todas as conversões admitidas (e seus callbacks)"""
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.join()
        return False

# ============================================================================
# METADADOS DO PACK
# ============================================================================

def _flatten_text(component: Any) -> str:
    """Converte um componente de texto JSON (str, dict ou lista) em texto simples"""
    if isinstance(component, str):
        return component
    if isinstance(component, list):
        return ''.join(_flatten_text(part) for part in component)
    if isinstance(component, dict):
        text = component.get('text', '')
        text = text if isinstance(text, str) else ''
        return text + ''.join(_flatten_text(part) for part in component.get('extra', []) or [])
    return ''


def read_pack_description(pack_root: Path) -> str:
    """Lê pack.description do pack.mcmeta (obrigatório)"""
    mcmeta_path = Path(pack_root) / 'pack.mcmeta'

    if not mcmeta_path.is_file():
        raise PackValidationError("Resource pack inválido! O arquivo pack.mcmeta não existe.")

    try:
        mcmeta = json.loads(mcmeta_path.read_text(encoding='utf-8-sig'))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PackValidationError(f"Resource pack inválido! pack.mcmeta malformado: {e}") from e

    if not isinstance(mcmeta, dict):
        raise PackValidationError("Resource pack inválido! pack.mcmeta não é um objeto JSON.")

    pack = mcmeta.get('pack')
    description = _flatten_text(pack.get('description')) if isinstance(pack, dict) else ''

    return description or DEFAULT_PACK_DESCRIPTION

# ============================================================================
# GERADOR DOS PACKS BEDROCK
# ============================================================================

class PackBuilder:
    """Gera manifests e empacota os packs Bedrock (.mcpack / .mcaddon)"""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.rp_path = self.output_dir / 'unpackaged' / 'rp'
        self.bp_path = self.output_dir / 'unpackaged' / 'bp'
        self.packaged_path = self.output_dir / 'packaged'

    @property
    def sound_definitions_path(self) -> Path:
        return self.rp_path / 'sounds' / 'sound_definitions.json'

    def create_structure(self):
        """Cria estrutura de pastas"""
        for path in (self.rp_path / 'sounds', self.bp_path, self.packaged_path):
            path.mkdir(parents=True, exist_ok=True)

    def generate_manifests(self, description: str) -> Tuple[Dict, Dict]:
        """Gera manifest.json do resource pack e do behavior pack mínimo"""
        rp_uuid = str(uuid.uuid4())
        bp_uuid = str(uuid.uuid4())

        rp_manifest = {
            "format_version": 2,
            "header": {
                "description": description,
                "name": RP_PACK_NAME,
                "uuid": rp_uuid,
                "version": PACK_VERSION,
                "min_engine_version": MIN_ENGINE_VERSION
            },
            "modules": [{
                "description": "Resource module for sounds",
                "type": "resources",
                "uuid": str(uuid.uuid4()),
                "version": PACK_VERSION
            }]
        }

        # BP vazio que depende do RP
        bp_manifest = {
            "format_version": 2,
            "header": {
                "description": BP_PACK_DESCRIPTION,
                "name": BP_PACK_NAME,
                "uuid": bp_uuid,
                "version": PACK_VERSION,
                "min_engine_version": MIN_ENGINE_VERSION
            },
            "modules": [{
                "description": "Data module (empty)",
                "type": "data",
                "uuid": str(uuid.uuid4()),
                "version": PACK_VERSION
            }],
            "dependencies": [{
                "uuid": rp_uuid,
                "version": PACK_VERSION
            }]
        }

        save_json(rp_manifest, self.rp_path / 'manifest.json')
        save_json(bp_manifest, self.bp_path / 'manifest.json')

        return rp_manifest, bp_manifest

    def copy_pack_icon(self, pack_root: Path) -> bool:
        icon = Path(pack_root) / 'pack.png'
        if not icon.is_file():
            return False
        self.rp_path.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(icon, self.rp_path / 'pack_icon.png')
        return True

    def package(self) -> Path:
        """Empacota RP e BP em .mcpack e ambos em um .mcaddon"""
        self.packaged_path.mkdir(parents=True, exist_ok=True)

        sound_pack = self._zip_directory(self.rp_path, self.packaged_path / SOUND_PACK_FILENAME)
        behavior_pack = self._zip_directory(self.bp_path, self.packaged_path / BEHAVIOR_PACK_FILENAME)

        addon_path = self.packaged_path / ADDON_FILENAME
        with zipfile.ZipFile(addon_path, 'w', zipfile.ZIP_DEFLATED) as mcaddon:
            for pack in (sound_pack, behavior_pack):
                mcaddon.write(pack, pack.name)

        return addon_path

    @staticmethod
    def _zip_directory(source: Path, target: Path) -> Path:
        with zipfile.ZipFile(target, 'w', zipfile.ZIP_DEFLATED) as archive:
            for file in sorted(source.rglob('*')):
                arcname = file.relative_to(source)
                # Ignora arquivos ocultos
                if not file.is_file() or any(part.startswith('.') for part in arcname.parts):
                    continue
                archive.write(file, arcname.as_posix())
        return target

# ============================================================================
# MOTOR PRINCIPAL
# ============================================================================

class SoundPackConverter:
    """Motor principal de conversão de sons"""

    def __init__(self, input_path: str, output_dir: str,
                 transcoder: Optional[Transcoder] = None,
                 max_workers: Optional[int] = None):
        self.input_path = Path(input_path)
        self.output_dir = Path(output_dir)
        self.transcoder = transcoder or Transcoder()
        self.max_workers = max_workers

        self.extract_dir = self.output_dir / '_extracted'
        self.pack_root: Optional[Path] = None
        self.pack_description = DEFAULT_PACK_DESCRIPTION
        self.addon_path: Optional[Path] = None

        self.builder = PackBuilder(self.output_dir)
        self.aggregator = DefinitionAggregator()

        # Estatísticas
        self.stats = new_stats()

    def run(self) -> Path:
        """Executa pipeline completo de conversão"""

        print(f"🚀 Iniciando conversão de sons: {self.input_path.name}")
        print("=" * 60)

        try:
            # Fase 1: Pré-verificação
            print("\n🔎 Fase 1: Verificando dependências e pack de entrada...")
            self.preflight()

            # Fase 2: Resolução e conversão de áudio
            print("\n🔄 Fase 2: Convertendo sons...")
            self.convert_sounds()

            # Fase 3: sound_definitions.json
            print("\n📝 Fase 3: Gerando sound_definitions.json...")
            self.write_definitions()

            # Fase 4: Manifests
            print("\n📁 Fase 4: Montando estrutura do addon...")
            self.build_addon_structure()

            # Fase 5: Empacotamento final
            print("\n📦 Fase 5: Gerando .mcaddon...")
            self.package_mcaddon()
        finally:
            self.cleanup()

        # Relatório final
        self.print_report()

        return self.addon_path

    def preflight(self):
        """Fase 1: Verifica ffmpeg e prepara o pack de entrada"""

        if not self.input_path.exists():
            raise FileNotFoundError(f"Pack de entrada não encontrado: {self.input_path}")

        if not self.transcoder.is_available():
            raise MissingDependencyError(
                "A dependência ffmpeg precisa estar instalada para continuar. "
                "Veja https://ffmpeg.org/download.html"
            )
        print("   ✓ ffmpeg disponível")

        self._clean_previous_output()
        self.pack_root = self._prepare_input()
        self.pack_description = read_pack_description(self.pack_root)
        self.builder.create_structure()

        print(f"   ✓ Pack de entrada: {self.pack_root}")

    def _clean_previous_output(self):
        for path in (self.output_dir / 'unpackaged', self.builder.packaged_path, self.extract_dir):
            if path.exists():
                shutil.rmtree(path)

    def _prepare_input(self) -> Path:
        """Descompacta o .zip (se necessário) e retorna a raiz do pack"""
        if self.input_path.is_dir():
            return self._find_pack_root(self.input_path)

        if not zipfile.is_zipfile(self.input_path):
            raise PackValidationError(f"{self.input_path.name} não é um arquivo .zip válido")

        self.extract_dir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(self.input_path, 'r') as archive:
            archive.extractall(self.extract_dir)

        print(f"   ✓ Pack descompactado em {self.extract_dir}")
        return self._find_pack_root(self.extract_dir)

    @staticmethod
    def _find_pack_root(directory: Path) -> Path:
        """Aceita packs compactados dentro de uma única pasta raiz"""
        if (directory / 'pack.mcmeta').is_file():
            return directory

        children = [child for child in directory.iterdir() if not child.name.startswith('.')]
        if len(children) == 1 and children[0].is_dir() and (children[0] / 'pack.mcmeta').is_file():
            return children[0]

        return directory

    def convert_sounds(self):
        """Fase 2: Resolve cada declaração e despacha a conversão de áudio"""

        scanner = DeclarationScanner(self.pack_root, self.stats)
        resolver = AssetResolver(self.pack_root, self.stats)
        key_builder = KeyPathBuilder(self.builder.rp_path)
        dispatcher = TranscodeDispatcher(self.transcoder, self.max_workers)

        try:
            for declaration in scanner.scan():
                asset = resolver.resolve(declaration)

                if not asset.is_resolved:
                    self.stats['sounds_unresolved'] += 1
                    continue

                self.stats['sounds_resolved'] += 1
                event = key_builder.build(declaration, asset)

                logger.info(f"JSON Key: {event.event_key} (File: {event.source_file} -> {event.output_file})")
                dispatcher.submit(event, self._record_event)
        finally:
            # Barreira: todas as conversões terminam antes da agregação
            dispatcher.join()

        self.stats['files_transcoded'] = dispatcher.transcoded
        self.stats['transcode_failures'] = dispatcher.failed
        for failure in dispatcher.failures:
            _warn(self.stats, failure)
        self.stats['events_generated'] = len(self.aggregator)

        print(f"   ✓ {self.stats['declarations_found']} declarações encontradas")
        print(f"   ✓ {self.stats['sounds_resolved']} sons resolvidos")
        print(f"   ✓ {self.stats['files_transcoded']} arquivos convertidos")

    def _record_event(self, event: BedrockSoundEvent):
        self.aggregator.add(event.event_key, event.output_asset_path)

    def write_definitions(self) -> Dict[str, Any]:
        """Fase 3: Gera sound_definitions.json"""

        document = self.aggregator.build()
        save_json(document, self.builder.sound_definitions_path)

        print(f"   ✓ {len(document['sound_definitions'])} eventos em {self.builder.sound_definitions_path}")
        return document

    def build_addon_structure(self):
        """Fase 4: Gera manifests e ícone"""

        self.builder.generate_manifests(self.pack_description)

        if self.builder.copy_pack_icon(self.pack_root):
            print("   ✓ pack_icon.png copiado")

        print("   ✓ Manifests gerados")

    def package_mcaddon(self):
        """Fase 5: Empacota tudo em .mcaddon"""

        self.addon_path = self.builder.package()

        print(f"\n✅ Addon gerado: {self.addon_path}")
        print(f"   Tamanho: {self.addon_path.stat().st_size / 1024:.2f} KB")

    def cleanup(self):
        """Remove os arquivos Java descompactados"""
        if self.extract_dir.exists():
            shutil.rmtree(self.extract_dir, ignore_errors=True)

    def print_report(self):
        """Imprime relatório final"""

        print("\n" + "=" * 60)
        print("📊 RELATÓRIO DE CONVERSÃO DE SONS")
        print("=" * 60)
        print(f"sounds.json lidos:      {self.stats['documents_scanned']}")
        print(f"sounds.json ignorados:  {self.stats['documents_skipped']}")
        print(f"Declarações:            {self.stats['declarations_found']}")
        print(f"Sons resolvidos:        {self.stats['sounds_resolved']}")
        print(f"Sons não encontrados:   {self.stats['sounds_unresolved']}")
        print(f"Arquivos convertidos:   {self.stats['files_transcoded']}")
        print(f"Falhas de conversão:    {self.stats['transcode_failures']}")
        print(f"Eventos gerados:        {self.stats['events_generated']}")

        if self.stats['errors']:
            print(f"\n⚠️  Avisos: {len(self.stats['errors'])}")
            for error in self.stats['errors'][:5]:  # Mostra só os 5 primeiros
                print(f"   - {error}")
            if len(self.stats['errors']) > 5:
                print(f"   ... e mais {len(self.stats['errors']) - 5} avisos")

        print("\n✨ Conversão concluída com sucesso!")
        print("=" * 60)

# ============================================================================
# FUNÇÃO PRINCIPAL
# ============================================================================

def convert_pack(input_path: str, output_folder: str,
                 transcoder: Optional[Transcoder] = None,
                 max_workers: Optional[int] = None) -> Dict[str, Any]:
    """
    Converte um resource pack Java e retorna o resultado

    Args:
        input_path: Caminho do .zip (ou pasta) do resource pack Java
        output_folder: Pasta de saída
        transcoder: Conversor de áudio (padrão: ffmpeg)
        max_workers: Limite de conversões simultâneas

    Returns:
        Dict com resultado e estatísticas
    """
    start = datetime.now()

    converter = SoundPackConverter(input_path, output_folder, transcoder, max_workers)
    addon_path = converter.run()

    elapsed = (datetime.now() - start).total_seconds()

    return {
        'success': True,
        'output_file': str(addon_path),
        'stats': {
            'declarations_found': converter.stats['declarations_found'],
            'sounds_resolved': converter.stats['sounds_resolved'],
            'files_transcoded': converter.stats['files_transcoded'],
            'events_generated': converter.stats['events_generated'],
            'errors': len(converter.stats['errors'])
        },
        'elapsed_time': f"{elapsed:.2f}s"
    }

# ============================================================================
# PONTO DE ENTRADA
# ============================================================================

def setup_logging(output_dir: Path):
    """Log no console (INFO) e debug.log completo na pasta de saída"""
    output_dir.mkdir(parents=True, exist_ok=True)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)

    file_handler = logging.FileHandler(output_dir / 'debug.log', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)

    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[console_handler, file_handler],
        force=True
    )


def main():
    """Função principal"""

    import sys

    if len(sys.argv) < 2:
        print("Uso: python sound_converter.py <resource_pack.zip> [output_dir]")
        print("\nExemplo:")
        print("  python sound_converter.py MyResourcePack.zip target/")
        sys.exit(1)

    input_path = sys.argv[1]
    output_dir = Path(sys.argv[2] if len(sys.argv) > 2 else "target")

    setup_logging(output_dir)

    try:
        SoundPackConverter(input_path, str(output_dir)).run()
    except Exception as e:
        print(f"\n❌ Erro fatal: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

if __name__ == "__main__":
    main()
