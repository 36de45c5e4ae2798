"""
Tests for build metadata persistence — data/build.db parsing and writing.
"""

import textwrap
from pathlib import Path

from distbuild.core.models import BuildMetadata
from distbuild.core.persistence.build_metadata import (
    default_metadata_path,
    format_build_metadata,
    load_build_metadata,
    parse_build_metadata,
    save_build_metadata,
)


class TestParse:
    def test_full_record(self):
        text = textwrap.dedent("""\
            # written at build time
            platform "Debian6"
            perl "5.10.1"
            arch "x86_64-linux"
            dbplatforms MySQL,SQLite
            dev "1"
        """)
        meta = parse_build_metadata(text)
        assert meta.platform == "Debian6"
        assert meta.runtime_version == "5.10.1"
        assert meta.architecture == "x86_64-linux"
        assert meta.db_platforms == ["MySQL", "SQLite"]
        assert meta.dev is True

    def test_keys_are_case_insensitive(self):
        meta = parse_build_metadata('Platform "Redhat9"\nPERL 5.8.8\n')
        assert meta.platform == "Redhat9"
        assert meta.runtime_version == "5.8.8"

    def test_comments_and_junk_ignored(self):
        meta = parse_build_metadata('# platform "Nope"\nsomething else\nplatform "Yes"\n')
        assert meta.platform == "Yes"

    def test_dev_zero_is_false(self):
        assert parse_build_metadata('dev "0"\n').dev is False

    def test_duplicate_db_platforms_collapse(self):
        meta = parse_build_metadata("dbplatforms MySQL, SQLite, MySQL\n")
        assert meta.db_platforms == ["MySQL", "SQLite"]

    def test_empty_text(self):
        meta = parse_build_metadata("")
        assert meta.platform is None
        assert meta.db_platforms == []


class TestLoadSave:
    def test_missing_file_returns_none(self, tmp_path: Path):
        assert load_build_metadata(tmp_path / "data" / "build.db") is None

    def test_save_then_load(self, tmp_path: Path):
        path = default_metadata_path(tmp_path)
        original = BuildMetadata(
            platform="Debian",
            runtime_version="5.10.1",
            architecture="x86_64-linux",
            db_platforms=["SQLite"],
        )
        save_build_metadata(original, path)
        assert path.is_file()
        assert load_build_metadata(path) == original

    def test_save_leaves_no_temp_files(self, tmp_path: Path):
        path = tmp_path / "data" / "build.db"
        save_build_metadata(BuildMetadata(platform="X"), path)
        assert [p.name for p in path.parent.iterdir()] == ["build.db"]

    def test_format_omits_unknown_fields(self):
        text = format_build_metadata(BuildMetadata(platform="X"))
        assert 'platform "X"' in text
        assert "perl" not in text
        assert 'dev "0"' in text
