"""
Testes da leitura dos sounds.json
"""

import logging

from sound_converter import DeclarationScanner, SoundDeclaration


def test_scan_normalizes_string_and_object_entries(java_pack):
    document = java_pack.sounds("footsteps", {
        "step.grass": {"sounds": ["grass1", {"name": "grass2", "volume": 0.5}]},
        "step.stone": {"sounds": ["footsteps:stone"]}
    })

    declarations = list(DeclarationScanner(java_pack.root).scan())

    assert declarations == [
        SoundDeclaration("footsteps", "step.grass", "grass1", document),
        SoundDeclaration("footsteps", "step.grass", "grass2", document),
        SoundDeclaration("footsteps", "step.stone", "footsteps:stone", document),
    ]


def test_scan_skips_vanilla_document(java_pack, caplog):
    caplog.set_level(logging.INFO, logger='sound_converter')
    java_pack.sounds("minecraft", {"ambient.cave": {"sounds": ["ambient/cave/cave1"]}})

    scanner = DeclarationScanner(java_pack.root)

    assert list(scanner.scan()) == []
    assert scanner.stats['documents_skipped'] == 1
    assert scanner.stats['errors'] == []
    assert "Ignorando sounds.json vanilla" in caplog.text


def test_scan_warns_on_undeterminable_namespace(java_pack, caplog):
    nested = java_pack.root / 'assets' / 'mod' / 'extra' / 'sounds.json'
    nested.parent.mkdir(parents=True)
    nested.write_text('{"a": {"sounds": ["b"]}}', encoding='utf-8')
    java_pack.sounds("Bad Namespace", {"a": {"sounds": ["b"]}})
    java_pack.sounds("good", {"a": {"sounds": ["b"]}})

    scanner = DeclarationScanner(java_pack.root)
    declarations = list(scanner.scan())

    assert [d.origin_namespace for d in declarations] == ["good"]
    assert scanner.stats['documents_skipped'] == 2
    assert len(scanner.stats['errors']) == 2
    assert "não foi possível determinar o namespace" in caplog.text


def test_scan_skips_unreadable_document_and_continues(java_pack):
    broken = java_pack.root / 'assets' / 'broken' / 'sounds.json'
    broken.parent.mkdir(parents=True)
    broken.write_text('{"a": ', encoding='utf-8')
    java_pack.sounds("ok", {"hit": {"sounds": ["hit1"]}})

    scanner = DeclarationScanner(java_pack.root)
    declarations = list(scanner.scan())

    assert [d.sound_reference for d in declarations] == ["hit1"]
    assert scanner.stats['documents_scanned'] == 1
    assert scanner.stats['documents_skipped'] == 1


def test_scan_ignores_malformed_entries(java_pack):
    java_pack.sounds("mod", {
        "no_sounds": {"subtitle": "x"},
        "bad_list": {"sounds": "oops"},
        "mixed": {"sounds": [42, {"volume": 1}, "real"]}
    })

    scanner = DeclarationScanner(java_pack.root)
    declarations = list(scanner.scan())

    assert [(d.event_key, d.sound_reference) for d in declarations] == [("mixed", "real")]
    assert len(scanner.stats['errors']) == 3


def test_each_scan_is_a_fresh_pass(java_pack):
    java_pack.sounds("mod", {"a": {"sounds": ["one", "two"]}})
    scanner = DeclarationScanner(java_pack.root)

    first = scanner.scan()
    next(first)

    assert len(list(scanner.scan())) == 2
    assert scanner.stats['declarations_found'] == 3


def test_scan_without_assets_folder(tmp_path):
    scanner = DeclarationScanner(tmp_path)

    assert list(scanner.scan()) == []
    assert len(scanner.stats['errors']) == 1
