from __future__ import annotations

from pathlib import Path

from build_orchestrator.config import ResourcesConfig
from build_orchestrator.resources import ManifestGenerator, ResourceSynchronizer


def _config(tmp_path: Path) -> ResourcesConfig:
    return ResourcesConfig(
        source_dir=tmp_path / "core" / "randomizer",
        packaged_dir=tmp_path / "lib" / "resources" / "randomizer",
    )


def test_disk_sync_and_manifest_scenario(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config.source_dir.mkdir(parents=True)
    config.packaged_dir.mkdir(parents=True)
    (config.source_dir / "a.lua").write_text("return 'a'\n", encoding="utf-8")
    (config.source_dir / "b.lua").write_text("return 'b v2'\n", encoding="utf-8")
    (config.packaged_dir / "b.lua").write_text("return 'b v1'\n", encoding="utf-8")
    (config.packaged_dir / "c.lua").write_text("return 'c'\n", encoding="utf-8")

    ResourceSynchronizer(config).sync()
    ManifestGenerator(config).generate()

    names = sorted(path.name for path in config.packaged_dir.iterdir())
    assert names == [".manifest", "a.lua", "b.lua"]
    assert (config.packaged_dir / "b.lua").read_text(encoding="utf-8") == "return 'b v2'\n"
    assert (config.packaged_dir / ".manifest").read_text(encoding="utf-8") == "a.lua\nb.lua"


def test_disk_sync_rerun_leaves_files_untouched(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config.source_dir.mkdir(parents=True)
    (config.source_dir / "init.lua").write_text("init\n", encoding="utf-8")
    synchronizer = ResourceSynchronizer(config)
    synchronizer.sync()
    packaged = config.packaged_dir / "init.lua"
    mtime_before = packaged.stat().st_mtime_ns

    result = synchronizer.sync()

    assert result.plan.is_noop is True
    assert packaged.stat().st_mtime_ns == mtime_before


def test_disk_sync_leaves_no_temp_files(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config.source_dir.mkdir(parents=True)
    for name in ("init.lua", "list.lua", "group.lua"):
        (config.source_dir / name).write_text(name, encoding="utf-8")

    ResourceSynchronizer(config).sync()
    ManifestGenerator(config).generate()

    leftovers = [path.name for path in config.packaged_dir.iterdir() if path.suffix == ".tmp"]
    assert leftovers == []


def test_disk_sync_keeps_unmanaged_files_named_like_temp_files(tmp_path: Path) -> None:
    config = _config(tmp_path)
    config.source_dir.mkdir(parents=True)
    config.packaged_dir.mkdir(parents=True)
    (config.source_dir / "a.lua").write_text("return 'a'\n", encoding="utf-8")
    (config.packaged_dir / "a.lua.tmp").write_text("keep me", encoding="utf-8")
    (config.packaged_dir / ".manifest.tmp").write_text("keep me too", encoding="utf-8")

    ResourceSynchronizer(config).sync()
    ManifestGenerator(config).generate()

    assert (config.packaged_dir / "a.lua.tmp").read_text(encoding="utf-8") == "keep me"
    assert (config.packaged_dir / ".manifest.tmp").read_text(encoding="utf-8") == "keep me too"
    assert sorted(path.name for path in config.packaged_dir.iterdir()) == [
        ".manifest",
        ".manifest.tmp",
        "a.lua",
        "a.lua.tmp",
    ]
