"""Tests for staleness logic and the generation inspector.

Coverage:
* ``is_stale`` is identity-based and direction-agnostic.
* ``reference_from_metadata`` parsing.
* ``GenerationInspector`` current/latest reference reading.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from conftest import FakeRunner
from nixos_systool.core.generation import is_stale, reference_from_metadata
from nixos_systool.core.models import GenerationReference
from nixos_systool.exceptions import ExternalToolError, NotFoundError
from nixos_systool.infra.generation_inspector import GenerationInspector

LOCK = {
    "nodes": {
        "root": {"inputs": {"nixpkgs": "nixpkgs"}},
        "nixpkgs": {"locked": {"lastModified": 1_700_000_000, "rev": "abc"}},
    },
    "root": "root",
    "version": 7,
}


# ---------------------------------------------------------------------------
# is_stale
# ---------------------------------------------------------------------------

class TestIsStale:
    @pytest.mark.parametrize("identifier", ["gen-41", "/nix/store/abc-source", ""])
    def test_reflexive(self, identifier: str) -> None:
        ref = GenerationReference(identifier)
        assert is_stale(ref, ref) is False

    def test_different_identifiers(self) -> None:
        assert is_stale(GenerationReference("gen-41"), GenerationReference("gen-42"))

    def test_direction_does_not_matter(self) -> None:
        assert is_stale(GenerationReference("gen-42"), GenerationReference("gen-41"))

    def test_timestamp_ignored(self) -> None:
        a = GenerationReference("gen-41", datetime(2024, 1, 1, tzinfo=timezone.utc))
        b = GenerationReference("gen-41", datetime(2025, 1, 1, tzinfo=timezone.utc))
        assert is_stale(a, b) is False


# ---------------------------------------------------------------------------
# reference_from_metadata
# ---------------------------------------------------------------------------

class TestReferenceFromMetadata:
    def test_path_and_timestamp(self) -> None:
        ref = reference_from_metadata({"path": "/nix/store/x-source", "lastModified": 0})
        assert ref.identifier == "/nix/store/x-source"
        assert ref.timestamp == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_missing_timestamp(self) -> None:
        assert reference_from_metadata({"path": "/nix/store/x"}).timestamp is None

    def test_missing_path(self) -> None:
        with pytest.raises(ExternalToolError):
            reference_from_metadata({"lastModified": 0})


# ---------------------------------------------------------------------------
# GenerationInspector.current_reference
# ---------------------------------------------------------------------------

class TestCurrentReference:
    def test_missing_marker(self, tmp_path: Path) -> None:
        inspector = GenerationInspector(tmp_path / "current-system-flake", FakeRunner())
        with pytest.raises(NotFoundError) as exc_info:
            inspector.current_reference()
        assert exc_info.value.hint is not None
        assert "current-system-flake" in exc_info.value.hint

    def test_file_marker(self, tmp_path: Path) -> None:
        marker = tmp_path / "current"
        marker.write_text("\ngen-41\n", encoding="utf-8")
        ref = GenerationInspector(marker, FakeRunner()).current_reference()
        assert ref.identifier == "gen-41"
        assert ref.timestamp is not None

    def test_empty_file_marker(self, tmp_path: Path) -> None:
        marker = tmp_path / "current"
        marker.write_text("  \n", encoding="utf-8")
        with pytest.raises(NotFoundError):
            GenerationInspector(marker, FakeRunner()).current_reference()

    def test_symlinked_directory_resolves(self, tmp_path: Path) -> None:
        store = tmp_path / "store-source"
        store.mkdir()
        (store / "flake.lock").write_text(json.dumps(LOCK), encoding="utf-8")
        link = tmp_path / "current-system-flake"
        os.symlink(store, link)

        inspector = GenerationInspector(link, FakeRunner())
        ref = inspector.current_reference()
        assert ref.identifier == str(store.resolve())
        assert ref.timestamp == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
        assert inspector.current_lock() == LOCK

    def test_directory_without_lock(self, tmp_path: Path) -> None:
        store = tmp_path / "store-source"
        store.mkdir()
        inspector = GenerationInspector(store, FakeRunner())
        assert inspector.current_reference().timestamp is None
        assert inspector.current_lock() is None

    def test_file_marker_has_no_lock(self, tmp_path: Path) -> None:
        marker = tmp_path / "current"
        marker.write_text("gen-41", encoding="utf-8")
        assert GenerationInspector(marker, FakeRunner()).current_lock() is None


# ---------------------------------------------------------------------------
# GenerationInspector.latest_reference
# ---------------------------------------------------------------------------

class TestLatestReference:
    def test_reads_metadata(self, tmp_path: Path) -> None:
        runner = FakeRunner({
            ("nix", "flake", "metadata"): (0, json.dumps({"path": "gen-42", "lastModified": 5})),
        })
        ref = GenerationInspector(tmp_path, runner).latest_reference(tmp_path)
        assert ref.identifier == "gen-42"
        assert runner.calls[0].args == ("nix", "flake", "metadata", "--json", str(tmp_path))
        assert runner.calls[0].capture_output is True

    def test_failed_metadata(self, tmp_path: Path) -> None:
        runner = FakeRunner({("nix", "flake", "metadata"): (1, "")})
        with pytest.raises(ExternalToolError) as exc_info:
            GenerationInspector(tmp_path, runner).latest_reference(tmp_path)
        assert exc_info.value.command_line is not None

    def test_invalid_json(self, tmp_path: Path) -> None:
        runner = FakeRunner({("nix", "flake", "metadata"): (0, "not json")})
        with pytest.raises(ExternalToolError, match="parse"):
            GenerationInspector(tmp_path, runner).latest_reference(tmp_path)

    def test_non_object_json(self, tmp_path: Path) -> None:
        runner = FakeRunner({("nix", "flake", "metadata"): (0, "[]")})
        with pytest.raises(ExternalToolError):
            GenerationInspector(tmp_path, runner).latest_reference(tmp_path)
