"""Validation of resource definitions and project export readiness.

Reports separate blocking ``errors`` from ``warnings`` and style
``recommendations``. The engine never raises: malformed input, and any
internal failure, comes back as an invalid report.
"""

import json
import re
from collections import Counter
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from workbench.errors import ProjectNotFound
from workbench.logging_config import get_logger
from workbench.schemas import ResourceType, ValidationReport
from workbench.services.assignment_manager import AssignmentManager
from workbench.utils import sanitize_name

logger = get_logger(__name__)

RULE_PRIORITIES = ("low", "medium", "high", "critical")
RULE_CATEGORIES = (
    "behavior",
    "formatting",
    "constraints",
    "guidelines",
    "security",
    "performance",
    "style",
    "workflow",
)
HOOK_TRIGGERS = (
    "on_message_send",
    "on_agent_complete",
    "on_session_create",
    "on_file_save",
    "on_manual_trigger",
    "on_project_open",
)

HOOK_TIMEOUT_MIN_MS = 1000
HOOK_TIMEOUT_MAX_MS = 600000

# rm flags may be bundled (-Rf), split (-r -f) or long, in any order
_RM_RECURSIVE = r"\s(?:-[a-zA-Z]*[rR][a-zA-Z]*|--recursive)(?=\s|$)"
_RM_FORCE = r"\s(?:-[a-zA-Z]*f[a-zA-Z]*|--force)(?=\s|$)"

DANGEROUS_COMMAND_PATTERNS = [
    re.compile(p)
    for p in (
        rf"\brm\b(?=[^;&|\n]*{_RM_RECURSIVE})(?=[^;&|\n]*{_RM_FORCE})",
        r"\bsudo\b",
        r"\bmkfs(\.\w+)?\b",
        r"\bdd\s+if=",
        r":\(\)\s*\{\s*:\|:&\s*\};:",
        r"\bchmod\s+(-R\s+)?777\b",
        r">\s*/dev/sd[a-z]",
    )
]

ACTIONABLE_WORDS = re.compile(
    r"\b(always|never|must|should|use|avoid|ensure|prefer|do not|don't|write|include|"
    r"follow|keep|limit|validate|require|run|check|return|add|remove)\b",
    re.IGNORECASE,
)
STRUCTURE_MARKERS = re.compile(r"<[a-zA-Z_][\w-]*>|^\s*#{1,6}\s", re.MULTILINE)
SPECIAL_CHARACTERS = re.compile(r"[^A-Za-z0-9 _.\-]")


def _text(data: Mapping, key: str) -> str:
    """Field value as stripped text; anything that is not a string counts as missing."""
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ""


def _field(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _check_length(report: ValidationReport, label: str, value: str, limit: int) -> None:
    if len(value) > limit:
        report.error(f"{label} must be {limit} characters or less")


def _validate_agent(data: Mapping, report: ValidationReport) -> None:
    name = _text(data, "name")
    role = _text(data, "role")
    prompt = _text(data, "system_prompt")
    description = _text(data, "description")

    if not name:
        report.error("Agent name is required")
    _check_length(report, "Agent name", name, 100)
    if not role:
        report.error("Agent role is required")
    _check_length(report, "Agent role", role, 200)
    if not prompt:
        report.error("Agent system prompt is required")
    _check_length(report, "Agent system prompt", prompt, 10000)
    _check_length(report, "Agent description", description, 500)

    output_format = data.get("output_format")
    if output_format not in (None, ""):
        try:
            if isinstance(output_format, str):
                json.loads(output_format)
            else:
                json.dumps(output_format)
        except (TypeError, ValueError):
            report.error("Output format must be valid JSON")

    if name and len(name) < 3:
        report.recommend("Consider using more descriptive names")
    if not description:
        report.recommend("Consider adding a description for better documentation")
    if prompt:
        if len(prompt) < 20:
            report.warn("System prompt is very short - agents work best with detailed instructions")
        if not STRUCTURE_MARKERS.search(prompt):
            report.recommend(
                "Consider using XML structure (e.g. <instructions>, <context>) to organize the system prompt"
            )
        if len(prompt) < 100:
            report.recommend(
                "Consider expanding the description of the agent's responsibilities in the system prompt"
            )


def _validate_rule(data: Mapping, report: ValidationReport) -> None:
    title = _text(data, "title") or _text(data, "name")
    rule_text = _text(data, "rule_text")

    if not title:
        report.error("Rule title is required")
    _check_length(report, "Rule title", title, 200)
    if not rule_text:
        report.error("Rule text is required")
    _check_length(report, "Rule text", rule_text, 5000)

    priority = data.get("priority")
    if priority not in (None, "") and priority not in RULE_PRIORITIES:
        report.error(f"Invalid priority '{priority}'. Must be one of: {', '.join(RULE_PRIORITIES)}")

    category = data.get("category")
    if category not in (None, "") and category not in RULE_CATEGORIES:
        report.warn(
            f"Unusual category '{category}'. Consider using: {', '.join(RULE_CATEGORIES)}"
        )

    if rule_text and not ACTIONABLE_WORDS.search(rule_text):
        report.recommend(
            "Use specific, actionable language (e.g. 'Always...', 'Never...', 'Use...') in the rule text"
        )
    if not _text(data, "description"):
        report.recommend("Consider adding a description for better documentation")


def _validate_hook(data: Mapping, report: ValidationReport) -> None:
    name = _text(data, "name")
    command = _text(data, "command")
    trigger = _text(data, "trigger_event")

    if not name:
        report.error("Hook name is required")
    _check_length(report, "Hook name", name, 100)
    if not command:
        report.error("Hook command is required")
    _check_length(report, "Hook command", command, 2000)
    if not trigger:
        report.error("Hook trigger event is required")
    elif trigger not in HOOK_TRIGGERS:
        report.warn(
            f"Unusual trigger event '{trigger}'. Consider using: {', '.join(HOOK_TRIGGERS)}"
        )

    if command and any(p.search(command) for p in DANGEROUS_COMMAND_PATTERNS):
        report.error("Hook command contains potentially dangerous operations")

    timeout_ms = data.get("timeout_ms")
    if timeout_ms is not None:
        if not isinstance(timeout_ms, int) or not (
            HOOK_TIMEOUT_MIN_MS <= timeout_ms <= HOOK_TIMEOUT_MAX_MS
        ):
            report.warn(
                f"Hook timeout should be between {HOOK_TIMEOUT_MIN_MS} and {HOOK_TIMEOUT_MAX_MS} ms"
            )


VALIDATORS: dict[ResourceType, Callable[[Mapping, ValidationReport], None]] = {
    ResourceType.AGENT: _validate_agent,
    ResourceType.RULE: _validate_rule,
    ResourceType.HOOK: _validate_hook,
}


class ValidationEngine:
    def validate_resource_definition(self, resource_type: Any, data: Any) -> ValidationReport:
        report = ValidationReport()
        try:
            rtype = ResourceType(resource_type)
        except ValueError:
            report.error(f"Invalid resource type: {resource_type}")
            return report

        if not isinstance(data, Mapping):
            report.error(f"{rtype.value.capitalize()} definition must be an object")
            return report

        try:
            VALIDATORS[rtype](data, report)
        except Exception as e:
            logger.error(f"Validation of {rtype.value} definition failed: {e}", exc_info=True)
            report.error(f"Validation failed due to an internal error: {e}")
        return report

    def validate_export_requirements(
        self, project: Any, resources: Optional[Mapping[str, list]]
    ) -> ValidationReport:
        report = ValidationReport()
        try:
            self._check_export(project, resources, report)
        except Exception as e:
            logger.error(f"Export validation failed: {e}", exc_info=True)
            report.error(f"Export validation failed due to an internal error: {e}")
        return report

    def _check_export(self, project: Any, resources: Optional[Mapping[str, list]], report: ValidationReport):
        report.required_components = {
            "project": False,
            "agents": False,
            "primaryAgent": False,
            "rules": False,
            "hooks": False,
        }
        if not project:
            report.error("Project data is required")
            return
        report.required_components["project"] = True

        name = _field(project, "name") or ""
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            report.error("Project name is required for export")
        elif not sanitize_name(name):
            report.error(
                "Project name contains only special characters - cannot create valid file structure"
            )
        elif SPECIAL_CHARACTERS.search(name):
            report.warn(
                "Project name contains special characters that may cause issues in exported file names"
            )

        if _field(project, "status") == "draft":
            report.warn("Project is in draft status - consider activating before export")
        if not _field(project, "description"):
            report.warn("Project description is missing - consider adding one for better documentation")

        resources = resources if isinstance(resources, Mapping) else {}
        agents = list(resources.get("agents") or [])
        rules = list(resources.get("rules") or [])
        hooks = list(resources.get("hooks") or [])

        if not agents and not rules and not hooks:
            report.error("Project has no assigned resources - cannot generate meaningful export")

        for key, items in (("agents", agents), ("rules", rules), ("hooks", hooks)):
            report.required_components[key] = bool(items)
            if not items:
                report.missing_components.append(key)

        if agents:
            primaries = [a for a in agents if _field(a, "is_primary")]
            report.required_components["primaryAgent"] = bool(primaries)
            if not primaries:
                report.warn("No primary agent assigned - consider setting one agent as primary")
            elif len(primaries) > 1:
                report.warn("Multiple primary agents found - only one should be primary")
        else:
            report.warn("No agents assigned to project - exported projects typically include at least one agent")

        for label, items in (("agent", agents), ("rule", rules), ("hook", hooks)):
            names = [_display_name(item) for item in items]
            duplicates = sorted(n for n, count in Counter(n for n in names if n).items() if count > 1)
            if duplicates:
                report.warn(f"Duplicate {label} names found: {', '.join(duplicates)}")

        if not rules:
            report.recommend("Consider adding rules to guide agent behavior")
        if not hooks:
            report.recommend("Consider adding hooks for workflow automation")

    async def validate_project_export(self, session: AsyncSession, project_id: str) -> ValidationReport:
        """Load a project and its assignments, then check export readiness."""
        manager = AssignmentManager(session)
        try:
            project = await manager.ensure_project(project_id)
        except ProjectNotFound as e:
            report = self.validate_export_requirements(None, None)
            report.errors = [e.message]
            return report
        resources: dict[str, list] = {"agents": [], "rules": [], "hooks": []}
        for assignment in await manager.list_assigned(project_id):
            if assignment.copy_index:
                continue
            resources[f"{assignment.resource_type}s"].append(
                {
                    "id": assignment.resource_id,
                    "name": assignment.resource_name,
                    "is_primary": assignment.is_primary,
                }
            )
        return self.validate_export_requirements(project, resources)


def _display_name(item: Any) -> Optional[str]:
    return _field(item, "name") or _field(item, "title") or _field(item, "resource_name")
