"""Tests for resource definition and export readiness validation."""
import pytest

from workbench.services.assignment_manager import AssignmentManager
from workbench.schemas import AssignmentOptions
from workbench.services.validation import ValidationEngine

from conftest import make_agent, make_hook, make_project, make_rule


@pytest.fixture
def engine():
    return ValidationEngine()


# ── resource definitions ──────────────────────────────────────────────────


def test_valid_agent(engine):
    report = engine.validate_resource_definition("agent", {
        "name": "Test Agent",
        "role": "Development Assistant",
        "system_prompt": "You are a helpful development assistant that helps with coding tasks.",
        "description": "A test agent for development tasks",
    })
    assert report.is_valid is True
    assert report.errors == []


def test_agent_missing_fields(engine):
    report = engine.validate_resource_definition("agent", {"name": "", "role": "", "system_prompt": ""})

    assert report.is_valid is False
    assert report.errors == [
        "Agent name is required",
        "Agent role is required",
        "Agent system prompt is required",
    ]


def test_agent_malformed_values_count_as_missing(engine):
    report = engine.validate_resource_definition(
        "agent", {"name": None, "system_prompt": {"invalid": "object"}}
    )
    assert report.is_valid is False
    assert "Agent system prompt is required" in report.errors


def test_agent_field_lengths(engine):
    report = engine.validate_resource_definition(
        "agent", {"name": "A" * 150, "role": "B" * 250, "system_prompt": "Valid prompt"}
    )
    assert report.is_valid is False
    assert "Agent name must be 100 characters or less" in report.errors
    assert "Agent role must be 200 characters or less" in report.errors


def test_agent_output_format_must_be_json(engine):
    bad = engine.validate_resource_definition("agent", {
        "name": "Format Agent",
        "role": "Helper",
        "system_prompt": "Help with formatting tasks",
        "output_format": "{ invalid json }",
    })
    assert "Output format must be valid JSON" in bad.errors

    good = engine.validate_resource_definition("agent", {
        "name": "Format Agent",
        "role": "Helper",
        "system_prompt": "Help with formatting tasks",
        "output_format": '{ "valid": "json" }',
    })
    assert good.is_valid is True


def test_agent_recommendations(engine):
    report = engine.validate_resource_definition("agent", {
        "name": "AI",
        "role": "Help",
        "system_prompt": "Help",
        "description": "",
    })
    assert report.is_valid is True
    assert any("System prompt is very short" in w for w in report.warnings)
    assert "Consider using more descriptive names" in report.recommendations
    assert "Consider adding a description for better documentation" in report.recommendations
    assert any("XML structure" in r for r in report.recommendations)
    assert any("expanding the description" in r for r in report.recommendations)


def test_structured_prompt_skips_xml_recommendation(engine):
    report = engine.validate_resource_definition("agent", {
        "name": "Planner",
        "role": "Planner",
        "system_prompt": "<instructions>Break work into small, reviewable steps.</instructions>",
        "description": "Plans work",
    })
    assert not any("XML structure" in r for r in report.recommendations)


def test_valid_rule(engine):
    report = engine.validate_resource_definition("rule", {
        "title": "Code Quality Rule",
        "description": "Ensures high code quality standards",
        "rule_text": "Always write clean, readable, and well-documented code",
        "category": "guidelines",
        "priority": "high",
    })
    assert report.is_valid is True
    assert report.warnings == []


def test_rule_invalid_priority(engine):
    report = engine.validate_resource_definition(
        "rule", {"title": "Test Rule", "rule_text": "Test rule content", "priority": "super_high"}
    )
    assert report.is_valid is False
    error = next(e for e in report.errors if "Invalid priority" in e)
    assert "Must be one of: low, medium, high, critical" in error


def test_rule_unusual_category_and_vague_text(engine):
    report = engine.validate_resource_definition(
        "rule", {"name": "Custom Rule", "rule_text": "Be good at coding", "category": "custom_category"}
    )
    assert report.is_valid is True
    warning = next(w for w in report.warnings if "Unusual category" in w)
    assert (
        "Consider using: behavior, formatting, constraints, guidelines, security, "
        "performance, style, workflow"
    ) in warning
    assert any("actionable language" in r for r in report.recommendations)


def test_rule_requires_title_and_text(engine):
    report = engine.validate_resource_definition("rule", {})
    assert report.errors == ["Rule title is required", "Rule text is required"]


def test_valid_hook(engine):
    report = engine.validate_resource_definition("hook", {
        "name": "Test Hook",
        "description": "A test automation hook",
        "trigger_event": "on_file_save",
        "command": 'echo "File saved"',
    })
    assert report.is_valid is True
    assert report.errors == []


@pytest.mark.parametrize("command", [
    "rm -rf /",
    "sudo rm -rf /",
    "rm -fr ~/project",
    "rm -Rf /",
    "rm --force --recursive /",
    "rm --recursive -f ~",
    "rm -r -f /tmp/build",
    "mkfs.ext4 /dev/sda1",
    "dd if=/dev/zero of=/dev/sda",
    ":(){ :|:& };:",
    "chmod -R 777 /",
    "cat junk > /dev/sda",
])
def test_hook_dangerous_commands(engine, command):
    report = engine.validate_resource_definition(
        "hook", {"name": "Dangerous Hook", "trigger_event": "on_file_save", "command": command}
    )
    assert report.is_valid is False
    assert report.errors == ["Hook command contains potentially dangerous operations"]


@pytest.mark.parametrize("command", ["rm -f build.log", "rm -r empty_dir", "rm ./dist-final.tar"])
def test_hook_plain_rm_is_allowed(engine, command):
    report = engine.validate_resource_definition(
        "hook", {"name": "Cleanup", "trigger_event": "on_file_save", "command": command}
    )
    assert report.is_valid is True


def test_hook_dangerous_command_without_other_fields(engine):
    report = engine.validate_resource_definition("hook", {"command": "rm -rf /"})
    assert report.is_valid is False
    assert "Hook command contains potentially dangerous operations" in report.errors


def test_hook_unusual_trigger_and_timeout(engine):
    report = engine.validate_resource_definition("hook", {
        "name": "Custom Hook",
        "trigger_event": "on_custom_event",
        "command": 'echo "custom trigger"',
        "timeout_ms": 10,
    })
    assert report.is_valid is True
    warning = next(w for w in report.warnings if "Unusual trigger event" in w)
    assert (
        "Consider using: on_message_send, on_agent_complete, on_session_create, "
        "on_file_save, on_manual_trigger, on_project_open"
    ) in warning
    assert any("timeout" in w for w in report.warnings)


def test_invalid_resource_type(engine):
    report = engine.validate_resource_definition("invalid_type", {})
    assert report.is_valid is False
    assert report.errors == ["Invalid resource type: invalid_type"]


def test_non_mapping_definition(engine):
    report = engine.validate_resource_definition("agent", None)
    assert report.is_valid is False
    assert len(report.errors) == 1


# ── export readiness ──────────────────────────────────────────────────────


def _full_resources():
    return {
        "agents": [{"id": "1", "name": "Agent 1", "is_primary": True}],
        "rules": [{"id": "1", "title": "Rule 1"}],
        "hooks": [{"id": "1", "name": "Hook 1"}],
    }


def test_complete_project_is_ready(engine):
    report = engine.validate_export_requirements(
        {"name": "Test Project", "description": "A test project", "status": "active"},
        _full_resources(),
    )
    assert report.is_valid is True
    assert report.required_components == {
        "project": True,
        "agents": True,
        "primaryAgent": True,
        "rules": True,
        "hooks": True,
    }
    assert report.missing_components == []


def test_no_resources(engine):
    report = engine.validate_export_requirements(
        {"name": "Test Project", "description": "Test project"},
        {"agents": [], "rules": [], "hooks": []},
    )
    assert report.is_valid is False
    assert any("Project has no assigned resources" in e for e in report.errors)
    assert report.missing_components == ["agents", "rules", "hooks"]
    assert any("No agents assigned" in w for w in report.warnings)
    assert "Consider adding rules to guide agent behavior" in report.recommendations
    assert "Consider adding hooks for workflow automation" in report.recommendations


def test_only_agents_is_valid(engine):
    report = engine.validate_export_requirements(
        {"name": "Agent Only Project", "description": "Only agents"},
        {"agents": [{"id": "1", "name": "Primary Agent", "is_primary": True}], "rules": [], "hooks": []},
    )
    assert report.is_valid is True
    assert report.required_components["primaryAgent"] is True
    assert report.missing_components == ["rules", "hooks"]


@pytest.mark.parametrize("project, expected", [
    (None, "Project data is required"),
    ({"name": "", "description": "x"}, "Project name is required for export"),
    (
        {"name": "@#$%^&*()", "description": "x"},
        "Project name contains only special characters - cannot create valid file structure",
    ),
])
def test_project_errors(engine, project, expected):
    report = engine.validate_export_requirements(project, _full_resources())
    assert report.is_valid is False
    assert expected in report.errors


def test_project_warnings(engine):
    report = engine.validate_export_requirements(
        {"name": "Project@#$%^&*()", "status": "draft"},
        {
            "agents": [
                {"id": "1", "name": "Duplicate Agent", "is_primary": True},
                {"id": "2", "name": "Duplicate Agent", "is_primary": True},
            ],
        },
    )
    assert report.is_valid is True
    assert "Project is in draft status - consider activating before export" in report.warnings
    assert "Project description is missing - consider adding one for better documentation" in report.warnings
    assert any("special characters that may cause issues" in w for w in report.warnings)
    assert "Multiple primary agents found - only one should be primary" in report.warnings
    assert any("Duplicate agent names found" in w for w in report.warnings)


def test_no_primary_agent(engine):
    report = engine.validate_export_requirements(
        {"name": "No Primary Project", "description": "x"},
        {"agents": [{"id": "1", "name": "A", "is_primary": False}], "rules": [], "hooks": []},
    )
    assert "No primary agent assigned - consider setting one agent as primary" in report.warnings
    assert report.required_components["primaryAgent"] is False


@pytest.mark.parametrize("resources", [None, "not-a-mapping", {"agents": None}])
def test_malformed_resources_never_raise(engine, resources):
    report = engine.validate_export_requirements({"name": "P", "description": "x"}, resources)
    assert report.is_valid is False
    assert report.missing_components == ["agents", "rules", "hooks"]


def test_internal_failure_becomes_report(engine):
    class Exploding:
        @property
        def name(self):
            raise RuntimeError("boom")

    report = engine.validate_export_requirements(Exploding(), _full_resources())
    assert report.is_valid is False
    assert any("boom" in e for e in report.errors)


@pytest.mark.asyncio
async def test_validate_project_export_uses_assignments(test_session, engine):
    project_id = await make_project(test_session, "Export Me")
    agent_id = await make_agent(test_session, "Lead")
    rule_id = await make_rule(test_session)
    hook_id = await make_hook(test_session)
    manager = AssignmentManager(test_session)
    await manager.assign(project_id, "agent", agent_id, AssignmentOptions(is_primary=True))
    await manager.assign(project_id, "rule", rule_id)
    await manager.assign(project_id, "hook", hook_id)

    report = await engine.validate_project_export(test_session, project_id)

    assert report.is_valid is True
    assert report.required_components["primaryAgent"] is True
    assert report.missing_components == []


@pytest.mark.asyncio
async def test_validate_project_export_unknown_project(test_session, engine):
    report = await engine.validate_project_export(test_session, "proj_missing")

    assert report.is_valid is False
    assert report.errors == ["Project not found: proj_missing"]
    assert report.required_components["project"] is False
