"""Tests for CLI commands in interact_bundle.cli.main.

Uses Click's CliRunner for full in-process invocation so that coverage
is collected against the real command implementations.
"""
from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from conftest import rewrite_archive
from interact_bundle.bundler.unpacker import unpack_bundle
from interact_bundle.cli.main import cli


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def source_dir(tmp_path: Path) -> Path:
    root = tmp_path / "algebra"
    (root / "docs").mkdir(parents=True)
    (root / "docs" / "ch1.md").write_text("# Chapter 1\n")
    (root / "flashcards").mkdir()
    (root / "flashcards" / "deck.json").write_text('{"cards": []}')
    return root


@pytest.fixture()
def draft_file(tmp_path: Path) -> Path:
    path = tmp_path / "draft.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "name": "Algebra Basics",
                "description": "Intro",
                "author": {"name": "A. Teacher"},
                "entry": "docs/ch1.md",
            }
        )
    )
    return path


@pytest.fixture()
def bundle_path(tmp_path: Path, packed: bytes) -> Path:
    path = tmp_path / "algebra.ib"
    path.write_bytes(packed)
    return path


@pytest.fixture()
def signed_path(tmp_path: Path, signed: bytes) -> Path:
    path = tmp_path / "algebra-signed.ib"
    path.write_bytes(signed)
    return path


# ---------------------------------------------------------------------------
# version command
# ---------------------------------------------------------------------------


class TestVersionCommand:
    def test_version_prints_package_name(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "interact-bundle" in result.output

    def test_version_contains_version_string(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert any(ch.isdigit() for ch in result.output)


# ---------------------------------------------------------------------------
# pack command
# ---------------------------------------------------------------------------


class TestPackCommand:
    def test_pack_writes_default_output(
        self, runner: CliRunner, source_dir: Path, draft_file: Path
    ) -> None:
        result = runner.invoke(cli, ["pack", str(source_dir), "--manifest", str(draft_file)])
        assert result.exit_code == 0, result.output
        out = source_dir.parent / "algebra-basics-1.0.0.ib"
        assert out.exists()
        manifest = unpack_bundle(out.read_bytes()).manifest
        assert sorted(manifest.integrity.files) == ["docs/ch1.md", "flashcards/deck.json"]
        assert "Bundle Packed" in result.output

    def test_pack_with_key_and_out(
        self, runner: CliRunner, source_dir: Path, draft_file: Path, tmp_path: Path
    ) -> None:
        out = tmp_path / "custom.ib"
        result = runner.invoke(
            cli,
            ["pack", str(source_dir), "-m", str(draft_file), "--key", "k1", "-o", str(out)],
        )
        assert result.exit_code == 0, result.output
        assert unpack_bundle(out.read_bytes()).manifest.signature is not None

    def test_pack_key_from_environment(
        self, runner: CliRunner, source_dir: Path, draft_file: Path, tmp_path: Path
    ) -> None:
        out = tmp_path / "env.ib"
        result = runner.invoke(
            cli,
            ["pack", str(source_dir), "-m", str(draft_file), "-o", str(out)],
            env={"INTERACT_BUNDLE_SIGN_KEY": "from-env"},
        )
        assert result.exit_code == 0, result.output
        assert unpack_bundle(out.read_bytes()).manifest.signature is not None

    def test_pack_json_draft(
        self, runner: CliRunner, source_dir: Path, tmp_path: Path
    ) -> None:
        draft = tmp_path / "draft.json"
        draft.write_text(json.dumps({"name": "Cells", "author": {"name": "B"}}))
        out = tmp_path / "cells.ib"
        result = runner.invoke(cli, ["pack", str(source_dir), "-m", str(draft), "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert unpack_bundle(out.read_bytes()).manifest.slug == "cells"

    def test_pack_invalid_draft_fails(
        self, runner: CliRunner, source_dir: Path, tmp_path: Path
    ) -> None:
        draft = tmp_path / "bad.yaml"
        draft.write_text("name: No Author\n")
        result = runner.invoke(cli, ["pack", str(source_dir), "-m", str(draft)])
        assert result.exit_code == 1
        assert "SCHEMA_VIOLATION" in result.output

    def test_pack_non_mapping_draft_fails(
        self, runner: CliRunner, source_dir: Path, tmp_path: Path
    ) -> None:
        draft = tmp_path / "list.yaml"
        draft.write_text("- one\n- two\n")
        result = runner.invoke(cli, ["pack", str(source_dir), "-m", str(draft)])
        assert result.exit_code == 1
        assert "mapping" in result.output

    def test_pack_malformed_yaml_fails(
        self, runner: CliRunner, source_dir: Path, tmp_path: Path
    ) -> None:
        draft = tmp_path / "broken.yaml"
        draft.write_text("name: [unclosed\nauthor: {name: A\n")
        result = runner.invoke(cli, ["pack", str(source_dir), "-m", str(draft)])
        assert result.exit_code == 1
        assert "cannot read manifest draft" in result.output

    def test_pack_empty_key_fails(
        self, runner: CliRunner, source_dir: Path, draft_file: Path
    ) -> None:
        result = runner.invoke(cli, ["pack", str(source_dir), "-m", str(draft_file), "--key", ""])
        assert result.exit_code == 1
        assert "signing key must not be empty" in result.output

    def test_pack_yaml_date_extra_fails(
        self, runner: CliRunner, source_dir: Path, tmp_path: Path
    ) -> None:
        draft = tmp_path / "dated.yaml"
        draft.write_text("name: Dated\nauthor:\n  name: A\nreleased: 2026-01-01\n")
        result = runner.invoke(cli, ["pack", str(source_dir), "-m", str(draft)])
        assert result.exit_code == 1
        assert "SCHEMA_VIOLATION" in result.output

    def test_pack_missing_source_dir(self, runner: CliRunner, draft_file: Path) -> None:
        result = runner.invoke(cli, ["pack", "/nonexistent/dir", "-m", str(draft_file)])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# validate command
# ---------------------------------------------------------------------------


class TestValidateCommand:
    def test_valid_bundle(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(cli, ["validate", str(bundle_path)])
        assert result.exit_code == 0, result.output
        assert "VALID:" in result.output
        assert "Algebra Basics" in result.output

    def test_tampered_bundle_exits_one(
        self, runner: CliRunner, bundle_path: Path, packed: bytes
    ) -> None:
        bundle_path.write_bytes(rewrite_archive(packed, replace={"docs/ch1.md": b"evil"}))
        result = runner.invoke(cli, ["validate", str(bundle_path)])
        assert result.exit_code == 1
        assert "INVALID:" in result.output
        assert "Integrity failure" in result.output

    def test_json_output(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(cli, ["validate", str(bundle_path), "--json-output"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data == {"valid": True, "errors": [], "warnings": []}

    def test_json_output_invalid(
        self, runner: CliRunner, bundle_path: Path, packed: bytes
    ) -> None:
        bundle_path.write_bytes(rewrite_archive(packed, add={"docs/x.md": b"x"}))
        result = runner.invoke(cli, ["validate", str(bundle_path), "--json-output"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["valid"] is False
        assert [e["code"] for e in data["errors"]] == ["UNTRACKED_FILE"]

    def test_signed_without_key_warns(self, runner: CliRunner, signed_path: Path) -> None:
        result = runner.invoke(cli, ["validate", str(signed_path), "--json-output"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [w["code"] for w in data["warnings"]] == ["SIGNATURE_UNVERIFIED"]

    def test_signed_with_wrong_key(self, runner: CliRunner, signed_path: Path) -> None:
        result = runner.invoke(cli, ["validate", str(signed_path), "--key", "wrong"])
        assert result.exit_code == 1
        assert "Signature verification failed" in result.output

    def test_signed_with_right_key(self, runner: CliRunner, signed_path: Path) -> None:
        result = runner.invoke(cli, ["validate", str(signed_path), "--key", "correct-horse"])
        assert result.exit_code == 0
        assert "VERIFIED" in result.output

    def test_size_threshold_from_config_file(
        self, runner: CliRunner, bundle_path: Path, tmp_path: Path
    ) -> None:
        config = tmp_path / "bundle.yaml"
        config.write_text("size_warning_bytes: 10\n")
        result = runner.invoke(
            cli, ["--config", str(config), "validate", str(bundle_path), "--json-output"]
        )
        assert result.exit_code == 0
        assert [w["code"] for w in json.loads(result.output)["warnings"]] == ["SIZE_WARNING"]

    def test_invalid_config_file(
        self, runner: CliRunner, bundle_path: Path, tmp_path: Path
    ) -> None:
        config = tmp_path / "bundle.yaml"
        config.write_text("unknown_option: 1\n")
        result = runner.invoke(cli, ["--config", str(config), "validate", str(bundle_path)])
        assert result.exit_code == 1
        assert "invalid configuration" in result.output

    def test_wrong_extension_warns(
        self, runner: CliRunner, tmp_path: Path, packed: bytes
    ) -> None:
        path = tmp_path / "bundle.zip"
        path.write_bytes(packed)
        result = runner.invoke(cli, ["validate", str(path)])
        assert result.exit_code == 0
        assert "expected .ib extension" in result.output

    def test_not_a_bundle(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "junk.ib"
        path.write_bytes(b"junk")
        result = runner.invoke(cli, ["validate", str(path)])
        assert result.exit_code == 1
        assert "INVALID:" in result.output


# ---------------------------------------------------------------------------
# sign command
# ---------------------------------------------------------------------------


class TestSignCommand:
    def test_sign_default_output(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(cli, ["sign", str(bundle_path), "--key", "k1"])
        assert result.exit_code == 0, result.output
        out = bundle_path.with_name("algebra-signed.ib")
        assert unpack_bundle(out.read_bytes()).manifest.signature is not None

    def test_sign_requires_key(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(cli, ["sign", str(bundle_path)], env={"INTERACT_BUNDLE_SIGN_KEY": None})
        assert result.exit_code != 0

    def test_sign_empty_key_fails(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(cli, ["sign", str(bundle_path), "--key", ""])
        assert result.exit_code == 1
        assert "signing key must not be empty" in result.output

    def test_sign_refuses_tampered(
        self, runner: CliRunner, bundle_path: Path, packed: bytes, tmp_path: Path
    ) -> None:
        bundle_path.write_bytes(rewrite_archive(packed, replace={"docs/ch2.md": None}))
        out = tmp_path / "out.ib"
        result = runner.invoke(cli, ["sign", str(bundle_path), "-k", "k1", "-o", str(out)])
        assert result.exit_code == 1
        assert "FILE_MISSING" in result.output
        assert not out.exists()


# ---------------------------------------------------------------------------
# bump command
# ---------------------------------------------------------------------------


class TestBumpCommand:
    def test_bump_default_patch(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(cli, ["bump", str(bundle_path)])
        assert result.exit_code == 0, result.output
        out = bundle_path.with_name("algebra-bumped.ib")
        assert unpack_bundle(out.read_bytes()).manifest.version == "1.0.1"

    def test_bump_minor_with_changelog(
        self, runner: CliRunner, bundle_path: Path, tmp_path: Path
    ) -> None:
        out = tmp_path / "next.ib"
        result = runner.invoke(
            cli, ["bump", str(bundle_path), "minor", "-c", "Added quiz", "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        manifest = unpack_bundle(out.read_bytes()).manifest
        assert manifest.version == "1.1.0"
        assert manifest.description.endswith("[v1.1.0] Added quiz")
        assert "1.1.0" in result.output

    def test_bump_invalid_level(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(cli, ["bump", str(bundle_path), "huge"])
        assert result.exit_code != 0

    def test_bump_tampered_fails(
        self, runner: CliRunner, bundle_path: Path, packed: bytes
    ) -> None:
        bundle_path.write_bytes(rewrite_archive(packed, replace={"docs/ch1.md": b"evil"}))
        result = runner.invoke(cli, ["bump", str(bundle_path), "major"])
        assert result.exit_code == 1
        assert "INTEGRITY_FAILURE" in result.output


# ---------------------------------------------------------------------------
# diff command
# ---------------------------------------------------------------------------


class TestDiffCommand:
    def test_diff_identical(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(cli, ["diff", str(bundle_path), str(bundle_path)])
        assert result.exit_code == 0, result.output
        assert "Bump level" in result.output
        assert "patch" in result.output

    def test_diff_json_output(
        self, runner: CliRunner, bundle_path: Path, tmp_path: Path
    ) -> None:
        bumped = tmp_path / "bumped.ib"
        runner.invoke(cli, ["bump", str(bundle_path), "major", "-o", str(bumped)])
        result = runner.invoke(cli, ["diff", str(bundle_path), str(bumped), "--json-output"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["from_version"] == "1.0.0"
        assert data["to_version"] == "2.0.0"
        assert data["added"] == data["removed"] == data["modified"] == 0
        assert {"field": "version", "from": "1.0.0", "to": "2.0.0"} in data["manifest_changes"]

    def test_diff_shows_file_changes(
        self, runner: CliRunner, bundle_path: Path, packed: bytes, tmp_path: Path
    ) -> None:
        other = tmp_path / "other.ib"
        other.write_bytes(rewrite_archive(packed, replace={"docs/ch2.md": None}))
        result = runner.invoke(cli, ["diff", str(bundle_path), str(other)])
        assert result.exit_code == 0, result.output
        assert "removed" in result.output
        assert "major" in result.output

    def test_diff_invalid_bundle(
        self, runner: CliRunner, bundle_path: Path, tmp_path: Path
    ) -> None:
        junk = tmp_path / "junk.ib"
        junk.write_bytes(b"junk")
        result = runner.invoke(cli, ["diff", str(bundle_path), str(junk)])
        assert result.exit_code == 1
        assert "BUNDLE_INVALID" in result.output


# ---------------------------------------------------------------------------
# inspect command
# ---------------------------------------------------------------------------


class TestInspectCommand:
    def test_inspect_summary(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(cli, ["inspect", str(bundle_path)])
        assert result.exit_code == 0, result.output
        assert "algebra-basics" in result.output
        assert "2 docs · 1 quiz · 1 deck" in result.output

    def test_inspect_deep_link(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(
            cli, ["inspect", str(bundle_path), "--url", "https://example.org/a.ib"]
        )
        assert result.exit_code == 0, result.output
        assert "ankrinteract://import?url=https%3A%2F%2Fexample.org%2Fa.ib" in result.output

    def test_inspect_prints_qr_data_uri(self, runner: CliRunner, bundle_path: Path) -> None:
        result = runner.invoke(
            cli, ["inspect", str(bundle_path), "--url", "https://example.org/a.ib"]
        )
        assert result.exit_code == 0, result.output
        assert "data:image/png;base64," in result.output

    def test_inspect_writes_qr_png(
        self, runner: CliRunner, bundle_path: Path, tmp_path: Path
    ) -> None:
        qr_path = tmp_path / "qr.png"
        result = runner.invoke(
            cli,
            ["inspect", str(bundle_path), "--url", "https://example.org/a.ib", "--qr-out", str(qr_path)],
        )
        assert result.exit_code == 0, result.output
        assert qr_path.read_bytes().startswith(b"\x89PNG\r\n\x1a\n")

    def test_inspect_qr_out_requires_url(
        self, runner: CliRunner, bundle_path: Path, tmp_path: Path
    ) -> None:
        qr_path = tmp_path / "qr.png"
        result = runner.invoke(cli, ["inspect", str(bundle_path), "--qr-out", str(qr_path)])
        assert result.exit_code == 1
        assert not qr_path.exists()
