"""Tests for deployment models and descriptor loading."""

import json

import pytest
from pydantic import ValidationError

from stackship.core.exceptions import DescriptorError
from stackship.deploy.descriptor import DescriptorLoader
from stackship.deploy.models import (
    DeploymentDescriptor,
    DeploymentReport,
    StackStatus,
)


class TestStackStatus:
    @pytest.mark.parametrize(
        "status",
        [
            StackStatus.CREATE_COMPLETE,
            StackStatus.UPDATE_COMPLETE,
            StackStatus.DELETE_COMPLETE,
            StackStatus.FAILED,
        ],
    )
    def test_terminal(self, status):
        assert status.is_terminal

    @pytest.mark.parametrize(
        "status",
        [
            StackStatus.NOT_EXISTS,
            StackStatus.CREATE_IN_PROGRESS,
            StackStatus.UPDATE_IN_PROGRESS,
            StackStatus.DELETE_IN_PROGRESS,
        ],
    )
    def test_not_terminal(self, status):
        assert not status.is_terminal

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("CREATE_IN_PROGRESS", StackStatus.CREATE_IN_PROGRESS),
            ("REVIEW_IN_PROGRESS", StackStatus.CREATE_IN_PROGRESS),
            ("ROLLBACK_IN_PROGRESS", StackStatus.CREATE_IN_PROGRESS),
            ("CREATE_COMPLETE", StackStatus.CREATE_COMPLETE),
            ("CREATE_FAILED", StackStatus.FAILED),
            ("ROLLBACK_COMPLETE", StackStatus.FAILED),
            ("ROLLBACK_FAILED", StackStatus.FAILED),
            ("UPDATE_IN_PROGRESS", StackStatus.UPDATE_IN_PROGRESS),
            ("UPDATE_COMPLETE_CLEANUP_IN_PROGRESS", StackStatus.UPDATE_IN_PROGRESS),
            ("UPDATE_ROLLBACK_IN_PROGRESS", StackStatus.UPDATE_IN_PROGRESS),
            ("UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS", StackStatus.UPDATE_IN_PROGRESS),
            ("UPDATE_ROLLBACK_COMPLETE", StackStatus.FAILED),
            ("UPDATE_COMPLETE", StackStatus.UPDATE_COMPLETE),
            ("DELETE_IN_PROGRESS", StackStatus.DELETE_IN_PROGRESS),
            ("DELETE_COMPLETE", StackStatus.DELETE_COMPLETE),
            ("DELETE_FAILED", StackStatus.FAILED),
            ("IMPORT_IN_PROGRESS", StackStatus.UPDATE_IN_PROGRESS),
            ("IMPORT_COMPLETE", StackStatus.UPDATE_COMPLETE),
        ],
    )
    def test_from_cloudformation(self, raw, expected):
        assert StackStatus.from_cloudformation(raw) == expected

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            StackStatus.from_cloudformation("SOMETHING_ELSE")


class TestDeploymentDescriptor:
    def test_parse_camel_case(self):
        descriptor = DeploymentDescriptor.model_validate(
            {
                "projectName": "shop",
                "compilationTimeStamp": "2024-01-01T00:00:00",
                "assemble": True,
                "handlerFiles": [{"handlerFile": "orders.jar"}, {"handlerFile": "users.jar"}],
                "exports": {
                    "dev": [
                        {
                            "exportName": "shop-dev-RestApiUrl",
                            "substitutionVariable": "${REST_API_URL}",
                            "exportMessage": "Created REST API. URL is ",
                        }
                    ]
                },
                "fileUploads": {
                    "dev": {
                        "website-dev": [
                            {
                                "localFile": "web/",
                                "targetFile": "",
                                "substituteVariables": True,
                            }
                        ]
                    }
                },
                "afterDeployments": {"dev": ["seed-data"]},
            }
        )

        assert descriptor.project_name == "shop"
        assert descriptor.assemble is True
        assert [h.handler_file for h in descriptor.handlers] == ["orders.jar", "users.jar"]
        assert descriptor.exports_for("dev")[0].substitution_variable == "${REST_API_URL}"
        assert descriptor.file_uploads_for("dev")["website-dev"][0].substitute_variables
        assert descriptor.hooks_for("dev") == ["seed-data"]

    def test_undeclared_stage_is_empty(self):
        descriptor = DeploymentDescriptor(project_name="shop")
        assert descriptor.exports_for("prod") == []
        assert descriptor.file_uploads_for("prod") == {}
        assert descriptor.hooks_for("prod") == []

    def test_project_name_required(self):
        with pytest.raises(ValidationError):
            DeploymentDescriptor.model_validate({"assemble": False})

    def test_immutable(self):
        descriptor = DeploymentDescriptor(project_name="shop")
        with pytest.raises(ValidationError):
            descriptor.project_name = "other"


class TestDescriptorLoader:
    def test_load(self, tmp_path):
        (tmp_path / "nimbus-state.json").write_text(json.dumps({"projectName": "shop"}))
        descriptor = DescriptorLoader().load(tmp_path)
        assert descriptor.project_name == "shop"

    def test_custom_file_name(self, tmp_path):
        (tmp_path / "state.json").write_text(json.dumps({"projectName": "shop"}))
        assert DescriptorLoader("state.json").load(str(tmp_path)).project_name == "shop"

    def test_missing_file(self, tmp_path):
        with pytest.raises(DescriptorError) as exc_info:
            DescriptorLoader().load(tmp_path)
        assert "not found" in str(exc_info.value)

    def test_invalid_json(self, tmp_path):
        (tmp_path / "nimbus-state.json").write_text("{not json")
        with pytest.raises(DescriptorError):
            DescriptorLoader().load(tmp_path)

    def test_invalid_content(self, tmp_path):
        (tmp_path / "nimbus-state.json").write_text(json.dumps({"handlerFiles": "nope"}))
        with pytest.raises(DescriptorError):
            DescriptorLoader().load(tmp_path)


class TestDeploymentReport:
    def test_to_dict(self):
        report = DeploymentReport(stack_name="shop-dev", stage="dev")
        report.outputs = (("URL is ", "https://example.com"),)
        report.warn("something")

        data = report.to_dict()
        assert data["stack_name"] == "shop-dev"
        assert data["outputs"] == [{"message": "URL is ", "value": "https://example.com"}]
        assert data["warnings"] == ["something"]
        assert data["duration_seconds"] is None
