"""Tests for export resolution."""

from unittest.mock import MagicMock

import pytest

from stackship.core.exceptions import AWSError, ExportNotFound
from stackship.deploy.exports import ExportResolver
from stackship.deploy.models import ExportBinding, ExportLookup
from stackship.deploy.providers.memory import InMemoryStackProvider


def binding(name: str, token: str, message: str = "") -> ExportBinding:
    return ExportBinding(export_name=name, substitution_variable=token, export_message=message)


class TestExportResolver:
    def test_find_export(self):
        resolver = ExportResolver(InMemoryStackProvider(exports={"a": "1"}))
        assert resolver.find_export("a") == ExportLookup(found=True, value="1")
        assert not resolver.find_export("b").found

    def test_require(self):
        resolver = ExportResolver(InMemoryStackProvider(exports={"bucket": "my-bucket"}))
        assert resolver.require("bucket") == "my-bucket"

    def test_require_missing(self):
        resolver = ExportResolver(InMemoryStackProvider())

        with pytest.raises(ExportNotFound) as exc_info:
            resolver.require("bucket", reason="Unable to find deployment bucket")

        assert exc_info.value.target == "bucket"
        assert exc_info.value.step == "find-export"
        assert "Unable to find deployment bucket" in str(exc_info.value)

    def test_require_provider_error(self):
        stacks = MagicMock()
        stacks.find_export.side_effect = AWSError("AccessDenied: nope", service="cloudformation")
        resolver = ExportResolver(stacks)

        with pytest.raises(ExportNotFound) as exc_info:
            resolver.require("bucket")

        assert isinstance(exc_info.value.cause, AWSError)


class TestResolveBindings:
    def test_keeps_declaration_order(self):
        stacks = InMemoryStackProvider(exports={"api": "https://api", "ws": "wss://ws"})
        resolver = ExportResolver(stacks)

        outputs = resolver.resolve_bindings(
            [
                binding("ws", "${WS}", "WebSocket URL: "),
                binding("api", "${API}", "REST URL: "),
            ]
        )

        assert outputs.substitutions == {"${WS}": "wss://ws", "${API}": "https://api"}
        assert outputs.messages == (("WebSocket URL: ", "wss://ws"), ("REST URL: ", "https://api"))

    def test_missing_exports_skipped(self):
        resolver = ExportResolver(InMemoryStackProvider(exports={"api": "https://api"}))

        outputs = resolver.resolve_bindings([binding("nope", "${X}"), binding("api", "${API}")])

        assert outputs.substitutions == {"${API}": "https://api"}
        assert len(outputs.messages) == 1

    def test_lookup_errors_skipped(self):
        stacks = MagicMock()
        stacks.find_export.side_effect = [
            AWSError("Throttling", service="cloudformation"),
            ExportLookup(found=True, value="v"),
        ]
        resolver = ExportResolver(stacks)

        outputs = resolver.resolve_bindings([binding("a", "${A}"), binding("b", "${B}")])

        assert outputs.substitutions == {"${B}": "v"}

    def test_no_bindings(self):
        outputs = ExportResolver(InMemoryStackProvider()).resolve_bindings([])
        assert outputs.substitutions == {}
        assert outputs.messages == ()
