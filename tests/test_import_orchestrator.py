"""Tests for batch import and import preview."""
import pytest
from pydantic import ValidationError

from workbench.errors import CircularDependency, ProjectNotFound
from workbench.schemas import AssignmentOptions, ImportRequest
from workbench.services.assignment_manager import AssignmentManager
from workbench.services.import_orchestrator import ImportOrchestrator

from conftest import make_agent, make_dependency, make_hook, make_project, make_rule


def _request(*items, **options) -> ImportRequest:
    """Build a request from (type, id[, extra fields]) tuples."""
    entries = []
    for item in items:
        extra = item[2] if len(item) > 2 else {}
        entries.append({"resource_type": item[0], "resource_id": item[1], **extra})
    return ImportRequest.model_validate({"items": entries, "options": options})


async def _snapshot(manager, project_id):
    return sorted(
        (a.resource_type, a.resource_id, a.copy_index, a.is_primary, str(a.config_overrides))
        for a in await manager.list_assigned(project_id)
    )


@pytest.mark.asyncio
async def test_import_assigns_items(test_session, locks):
    project_id = await make_project(test_session)
    agent_id = await make_agent(test_session)
    hook_id = await make_hook(test_session)
    orchestrator = ImportOrchestrator(test_session, locks=locks)

    result = await orchestrator.import_resources(
        project_id,
        _request(("agent", agent_id, {"config_overrides": {"model": "large"}}), ("hook", hook_id)),
    )

    assert [o.status for o in result.successful] == ["imported", "imported"]
    assert result.failed == [] and result.skipped == []
    assigned = await orchestrator.manager.list_assigned(project_id)
    by_type = {a.resource_type: a for a in assigned}
    assert by_type["agent"].config_overrides == {"model": "large"}
    assert by_type["hook"].config_overrides is None
    assert result.summary["successful"] == 2


@pytest.mark.asyncio
async def test_critical_dependency_is_imported_first(test_session, locks):
    """R1 depends critically on R2; both end up assigned, R2 under dependencies."""
    project_id = await make_project(test_session)
    r1 = await make_rule(test_session, "R1")
    r2 = await make_rule(test_session, "R2")
    await make_dependency(test_session, ("rule", r1), ("rule", r2))
    orchestrator = ImportOrchestrator(test_session, locks=locks)

    result = await orchestrator.import_resources(
        project_id, _request(("rule", r1), resolve_dependencies=True)
    )

    assert [(o.resource_id, o.status) for o in result.successful] == [(r1, "imported")]
    assert result.failed == []
    assert [(d.target_id, d.action) for d in result.dependencies] == [(r2, "imported")]
    assigned = {a.resource_id for a in await orchestrator.manager.list_assigned(project_id)}
    assert assigned == {r1, r2}
    assert result.summary["dependencies_imported"] == 1


@pytest.mark.asyncio
async def test_non_critical_dependency_not_imported(test_session, locks):
    project_id = await make_project(test_session)
    agent_id = await make_agent(test_session)
    hook_id = await make_hook(test_session)
    await make_dependency(test_session, ("agent", agent_id), ("hook", hook_id), "enhances", is_critical=False)
    orchestrator = ImportOrchestrator(test_session, locks=locks)

    result = await orchestrator.import_resources(project_id, _request(("agent", agent_id)))

    assert result.dependencies[0].action == "not_imported"
    assert {a.resource_id for a in await orchestrator.manager.list_assigned(project_id)} == {agent_id}


@pytest.mark.asyncio
async def test_dependency_already_assigned_is_left_alone(test_session, locks):
    project_id = await make_project(test_session)
    r1 = await make_rule(test_session, "R1")
    r2 = await make_rule(test_session, "R2")
    await make_dependency(test_session, ("rule", r1), ("rule", r2))
    orchestrator = ImportOrchestrator(test_session, locks=locks)
    await orchestrator.manager.assign(project_id, "rule", r2, AssignmentOptions(assigned_by="me"))

    result = await orchestrator.import_resources(
        project_id, _request(("rule", r1), conflict_resolution="rename")
    )

    assert result.dependencies[0].action == "already_assigned"
    rules = await orchestrator.manager.list_assigned(project_id, "rule")
    assert sorted(a.resource_id for a in rules) == sorted([r1, r2])


@pytest.mark.asyncio
async def test_missing_resource_fails_item_but_batch_continues(test_session, locks):
    project_id = await make_project(test_session)
    agent_id = await make_agent(test_session)
    orchestrator = ImportOrchestrator(test_session, locks=locks)

    result = await orchestrator.import_resources(
        project_id, _request(("rule", "rule_nope"), ("agent", agent_id))
    )

    assert len(result.failed) == 1
    assert result.failed[0].resource_id == "rule_nope"
    assert result.failed[0].error == "ResourceNotFound"
    assert [o.resource_id for o in result.successful] == [agent_id]
    assigned = await orchestrator.manager.list_assigned(project_id)
    assert [a.resource_id for a in assigned] == [agent_id]


@pytest.mark.asyncio
async def test_missing_critical_dependency_fails_item(test_session, locks):
    project_id = await make_project(test_session)
    r1 = await make_rule(test_session, "R1")
    await make_dependency(test_session, ("rule", r1), ("rule", "rule_gone"))
    orchestrator = ImportOrchestrator(test_session, locks=locks)

    result = await orchestrator.import_resources(project_id, _request(("rule", r1)))

    assert [(o.resource_id, o.error) for o in result.failed] == [(r1, "CriticalDependencyMissing")]
    assert result.dependencies[0].action == "missing"
    assert await orchestrator.manager.list_assigned(project_id) == []


@pytest.mark.asyncio
async def test_missing_critical_dependency_is_warning_without_resolution(test_session, locks):
    project_id = await make_project(test_session)
    r1 = await make_rule(test_session, "R1")
    await make_dependency(test_session, ("rule", r1), ("rule", "rule_gone"))
    orchestrator = ImportOrchestrator(test_session, locks=locks)

    result = await orchestrator.import_resources(
        project_id, _request(("rule", r1), resolve_dependencies=False)
    )

    assert [o.resource_id for o in result.successful] == [r1]
    assert any("rule/rule_gone" in w for w in result.warnings)


@pytest.mark.asyncio
async def test_dependent_fails_when_its_dependency_failed(test_session, locks):
    project_id = await make_project(test_session)
    top = await make_agent(test_session)
    mid = await make_rule(test_session, "Mid")
    await make_dependency(test_session, ("agent", top), ("rule", mid))
    await make_dependency(test_session, ("rule", mid), ("hook", "hook_gone"))
    orchestrator = ImportOrchestrator(test_session, locks=locks)

    result = await orchestrator.import_resources(project_id, _request(("agent", top)))

    assert [o.error for o in result.failed] == ["CriticalDependencyMissing"]
    actions = {(d.target_type, d.target_id): d.action for d in result.dependencies}
    assert actions[("rule", mid)] == "failed"
    assert actions[("hook", "hook_gone")] == "missing"
    assert await orchestrator.manager.list_assigned(project_id) == []


@pytest.mark.asyncio
async def test_cycle_aborts_import_before_any_write(test_session, locks):
    project_id = await make_project(test_session)
    free = await make_hook(test_session)
    a = await make_rule(test_session, "A")
    b = await make_rule(test_session, "B")
    await make_dependency(test_session, ("rule", a), ("rule", b))
    await make_dependency(test_session, ("rule", b), ("rule", a))
    orchestrator = ImportOrchestrator(test_session, locks=locks)

    with pytest.raises(CircularDependency) as exc:
        await orchestrator.import_resources(project_id, _request(("hook", free), ("rule", a)))

    assert exc.value.path == [("rule", a), ("rule", b), ("rule", a)]
    assert await orchestrator.manager.list_assigned(project_id) == []


@pytest.mark.asyncio
async def test_skip_is_idempotent(test_session, locks):
    project_id = await make_project(test_session)
    agent_id = await make_agent(test_session)
    r1 = await make_rule(test_session, "R1")
    r2 = await make_rule(test_session, "R2")
    await make_dependency(test_session, ("rule", r1), ("rule", r2))
    orchestrator = ImportOrchestrator(test_session, locks=locks)
    request = _request(("agent", agent_id, {"config_overrides": {"x": 1}}), ("rule", r1))

    await orchestrator.import_resources(project_id, request)
    first = await _snapshot(orchestrator.manager, project_id)
    second_result = await orchestrator.import_resources(project_id, request)
    second = await _snapshot(orchestrator.manager, project_id)

    assert first == second
    assert len(second_result.skipped) == 2
    assert second_result.successful == []


@pytest.mark.asyncio
async def test_overwrite_updates_in_place(test_session, locks):
    project_id = await make_project(test_session)
    agent_id = await make_agent(test_session)
    orchestrator = ImportOrchestrator(test_session, locks=locks)
    original = await orchestrator.manager.assign(
        project_id, "agent", agent_id, AssignmentOptions(config_overrides={"v": 1}, is_primary=True)
    )

    result = await orchestrator.import_resources(
        project_id,
        _request(
            ("agent", agent_id, {"config_overrides": {"v": 2}}),
            conflict_resolution="overwrite",
            assigned_by="importer",
        ),
    )

    assert [(o.status, o.assignment_id) for o in result.successful] == [("updated", original.id)]
    assigned = await orchestrator.manager.list_assigned(project_id)
    assert len(assigned) == 1
    assert assigned[0].config_overrides == {"v": 2}
    assert assigned[0].assigned_by == "importer"
    assert assigned[0].is_primary is True


@pytest.mark.asyncio
async def test_rename_adds_copy_and_keeps_original(test_session, locks):
    project_id = await make_project(test_session)
    rule_id = await make_rule(test_session)
    orchestrator = ImportOrchestrator(test_session, locks=locks)
    original = await orchestrator.manager.assign(
        project_id, "rule", rule_id, AssignmentOptions(assignment_order=4)
    )

    result = await orchestrator.import_resources(
        project_id, _request(("rule", rule_id), conflict_resolution="rename")
    )

    assert result.successful[0].status == "imported"
    assert "copy 1" in result.successful[0].note
    rows = await orchestrator.manager.list_assigned(project_id)
    assert [(r.id == original.id, r.copy_index, r.assignment_order) for r in rows] == [
        (True, 0, 4),
        (False, 1, 5),
    ]

    # Unassigning removes the copies too
    assert await orchestrator.manager.unassign(project_id, "rule", rule_id)
    assert await orchestrator.manager.list_assigned(project_id) == []


@pytest.mark.asyncio
async def test_unknown_project_aborts(test_session, locks):
    orchestrator = ImportOrchestrator(test_session, locks=locks)
    with pytest.raises(ProjectNotFound):
        await orchestrator.import_resources("proj_missing", _request(("agent", "x")))


@pytest.mark.asyncio
async def test_malformed_request_aborts(test_session, locks):
    project_id = await make_project(test_session)
    orchestrator = ImportOrchestrator(test_session, locks=locks)
    with pytest.raises(ValidationError):
        await orchestrator.import_resources(
            project_id, {"items": [{"resource_type": "widget", "resource_id": "w1"}]}
        )


# ── preview ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_preview_is_pure(test_session, locks):
    project_id = await make_project(test_session)
    a1 = await make_agent(test_session, "A1")
    a2 = await make_agent(test_session, "A2")
    r1 = await make_rule(test_session, "R1")
    r2 = await make_rule(test_session, "R2")
    await make_dependency(test_session, ("rule", r1), ("rule", r2))
    orchestrator = ImportOrchestrator(test_session, locks=locks)
    await orchestrator.manager.assign(project_id, "agent", a1)
    before = await _snapshot(orchestrator.manager, project_id)

    for strategy in ("skip", "overwrite", "rename"):
        report = await orchestrator.preview(
            project_id,
            _request(
                ("agent", a1, {"config_overrides": {"new": True}}),
                ("agent", a2),
                ("rule", r1),
                ("hook", "hook_missing"),
                conflict_resolution=strategy,
            ),
        )
        assert await _snapshot(orchestrator.manager, project_id) == before
        assert report.can_import is False  # the missing hook

    statuses = {o.resource_id: o.status for o in report.items}
    assert statuses == {a1: "imported", a2: "imported", r1: "imported", "hook_missing": "failed"}
    notes = {o.resource_id: o.note for o in report.items}
    assert "copy 1" in notes[a1]
    assert notes[a2] is None
    assert report.conflicts and a1 in report.conflicts[0]
    assert [(d.target_id, d.action) for d in report.dependencies] == [(r2, "imported")]


@pytest.mark.asyncio
async def test_preview_reports_cycles(test_session, locks):
    project_id = await make_project(test_session)
    a = await make_rule(test_session, "A")
    b = await make_rule(test_session, "B")
    await make_dependency(test_session, ("rule", a), ("rule", b))
    await make_dependency(test_session, ("rule", b), ("rule", a))
    orchestrator = ImportOrchestrator(test_session, locks=locks)

    report = await orchestrator.preview(project_id, _request(("rule", a)))

    assert report.can_import is False
    assert [[(r.resource_type, r.resource_id) for r in c] for c in report.circular_dependencies] == [
        [("rule", a), ("rule", b), ("rule", a)]
    ]
    assert any(e.startswith("CircularDependency") for e in report.errors)
    assert await orchestrator.manager.list_assigned(project_id) == []


@pytest.mark.asyncio
async def test_preview_clean_request_can_import(test_session, locks):
    project_id = await make_project(test_session)
    agent_id = await make_agent(test_session)
    orchestrator = ImportOrchestrator(test_session, locks=locks)

    report = await orchestrator.preview(project_id, _request(("agent", agent_id)))

    assert report.can_import is True
    assert report.errors == []
    assert [o.status for o in report.items] == ["imported"]
