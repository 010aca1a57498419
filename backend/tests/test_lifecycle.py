import pytest

from app.core.errors import Forbidden, InvalidInput, InvalidState, NotFound
from app.models.game_version import SELF_QA_ITEMS, VersionStatus
from app.repositories.audit_repository import AuditRepository
from app.services.lifecycle_service import LifecycleService

FULL_CHECKLIST = {item: True for item in SELF_QA_ITEMS}


@pytest.fixture
def dev(make_user):
    return make_user("dev")


@pytest.fixture
def cto(make_user):
    return make_user("cto")


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def lifecycle(repos):
    return LifecycleService(repos)


@pytest.fixture
def game(repos, dev):
    return repos.games.create(game_id="com.iruka.counting", title="Counting", owner_id=dev.id)


@pytest.fixture
def make_version(repos, game, dev):
    def _make(version="1.0.0", status=VersionStatus.draft):
        row = repos.versions.create(
            game_id=game.id,
            version=version,
            storage_path=f"games/{game.game_id}/{version}",
            submitted_by=dev.id,
            build_size=10,
            status=status,
        )
        repos.games.update_latest_version(game.id, row.id)
        return row

    return _make


def test_game_without_version(lifecycle, game, cto):
    with pytest.raises(InvalidState, match="no version to approve"):
        lifecycle.decide(game.game_id, cto, "approve")


def test_unknown_game(lifecycle, cto):
    with pytest.raises(NotFound):
        lifecycle.decide("com.iruka.nothing", cto, "approve")


def test_missing_latest_version_row(lifecycle, repos, game, make_version, cto):
    version = make_version()
    repos.versions.soft_delete(version.id)
    with pytest.raises(NotFound):
        lifecycle.decide(game.game_id, cto, "approve")


def test_submit_requires_complete_self_qa(lifecycle, repos, game, make_version, dev):
    version = make_version()
    lifecycle.update_self_qa(game.game_id, dev, {**FULL_CHECKLIST, "testedAudio": False})

    with pytest.raises(InvalidState, match="Self-QA checklist must be 100% complete"):
        lifecycle.submit_for_qc(game.game_id, dev)
    assert repos.versions.find_by_id(version.id).status == VersionStatus.draft

    lifecycle.update_self_qa(game.game_id, dev, FULL_CHECKLIST, note="checked on iPad")
    result = lifecycle.submit_for_qc(game.game_id, dev)
    assert result.previous_status == VersionStatus.draft
    assert result.status == VersionStatus.uploaded
    assert result.version.submitted_at is not None
    assert result.version.self_qa_checklist["note"] == "checked on iPad"


def test_self_qa_only_by_owner_while_editable(lifecycle, make_user, game, make_version, dev):
    make_version(status=VersionStatus.approved)
    with pytest.raises(InvalidState):
        lifecycle.update_self_qa(game.game_id, dev, FULL_CHECKLIST)
    with pytest.raises(Forbidden):
        lifecycle.update_self_qa(game.game_id, make_user("dev"), FULL_CHECKLIST)


def test_resubmit_after_qc_failed(lifecycle, game, make_version, dev):
    make_version(status=VersionStatus.qc_failed)
    lifecycle.update_self_qa(game.game_id, dev, FULL_CHECKLIST)
    assert lifecycle.submit_for_qc(game.game_id, dev).status == VersionStatus.uploaded


def test_qc_review(lifecycle, game, make_version, make_user, dev):
    make_version(status=VersionStatus.uploaded)
    qc = make_user("qc")
    with pytest.raises(Forbidden):
        lifecycle.review_qc(game.game_id, dev, "pass")
    with pytest.raises(InvalidInput):
        lifecycle.review_qc(game.game_id, qc, "maybe")
    assert lifecycle.review_qc(game.game_id, qc, "pass").status == VersionStatus.qc_passed


@pytest.mark.parametrize(
    "status",
    [VersionStatus.draft, VersionStatus.uploaded, VersionStatus.qc_processing, VersionStatus.qc_passed],
)
def test_approve_from_reviewable_status(lifecycle, game, make_version, cto, status):
    make_version(status=status)
    result = lifecycle.decide(game.game_id, cto, "approve", notes="looks good")
    assert result.status == VersionStatus.approved
    assert result.previous_status == status


@pytest.mark.parametrize(
    "status",
    [VersionStatus.qc_failed, VersionStatus.approved, VersionStatus.published, VersionStatus.archived],
)
@pytest.mark.parametrize("decision", ["approve", "reject"])
def test_decision_rejected_and_status_unchanged(lifecycle, repos, game, make_version, cto, status, decision):
    version = make_version(status=status)
    with pytest.raises(InvalidState) as exc_info:
        lifecycle.decide(game.game_id, cto, decision)
    assert status.value in exc_info.value.detail
    assert repos.versions.find_by_id(version.id).status == status


def test_reject_moves_to_qc_failed(lifecycle, game, make_version, cto):
    make_version(status=VersionStatus.uploaded)
    assert lifecycle.decide(game.game_id, cto, "reject").status == VersionStatus.qc_failed


def test_decide_requires_permission(lifecycle, game, make_version, dev):
    make_version(status=VersionStatus.uploaded)
    with pytest.raises(Forbidden):
        lifecycle.decide(game.game_id, dev, "approve")


@pytest.mark.parametrize("status", [s for s in VersionStatus if s != VersionStatus.approved])
def test_publish_requires_approved(lifecycle, repos, game, make_version, admin, status):
    version = make_version(status=status)
    with pytest.raises(InvalidState):
        lifecycle.publish(game.game_id, admin)
    assert repos.versions.find_by_id(version.id).status == status
    assert repos.games.find_by_id(game.id).live_version_id is None


def test_publish_updates_live_pointer(lifecycle, repos, game, make_version, admin):
    version = make_version(status=VersionStatus.approved)
    result = lifecycle.publish(game.game_id, admin)

    refreshed = repos.games.find_by_id(game.id)
    assert refreshed.live_version_id == version.id
    assert refreshed.published_at is not None
    assert repos.versions.find_by_id(version.id).status == VersionStatus.published
    assert result.status == VersionStatus.published


def test_publish_requires_permission(lifecycle, game, make_version, cto):
    make_version(status=VersionStatus.approved)
    with pytest.raises(Forbidden):
        lifecycle.publish(game.game_id, cto)


def test_publishing_new_version_archives_previous_live(lifecycle, repos, game, make_version, admin):
    first = make_version("1.0.0", status=VersionStatus.approved)
    lifecycle.publish(game.game_id, admin)
    second = make_version("1.1.0", status=VersionStatus.approved)

    result = lifecycle.publish(game.game_id, admin)

    assert repos.versions.find_by_id(first.id).status == VersionStatus.archived
    assert repos.versions.find_by_id(second.id).status == VersionStatus.published
    assert repos.games.find_by_id(game.id).live_version_id == second.id
    assert len(result.side_effects) == 4


def test_audit_and_history_written(lifecycle, repos, game, make_version, cto):
    version = make_version(status=VersionStatus.uploaded)
    lifecycle.decide(game.game_id, cto, "approve", notes="ok")

    [entry] = repos.audit.list_audit()
    assert entry.action == "GAME_APPROVE"
    assert entry.target_id == str(version.id)
    assert entry.actor_role == "cto"
    assert entry.details["previousStatus"] == "uploaded"
    assert entry.details["newStatus"] == "approved"
    assert entry.details["notes"] == "ok"

    [history] = repos.audit.list_history(game.id)
    assert history.action == "Đã duyệt phiên bản 1.0.0"
    assert history.old_status == "uploaded"
    assert history.new_status == "approved"


def test_side_effect_failure_is_reported_not_rolled_back(
    lifecycle, repos, game, make_version, cto, monkeypatch
):
    version = make_version(status=VersionStatus.uploaded)

    def broken_audit(self, **kwargs):
        raise RuntimeError("audit sink unavailable")

    monkeypatch.setattr(AuditRepository, "add_audit", broken_audit)

    result = lifecycle.decide(game.game_id, cto, "approve")

    assert result.status == VersionStatus.approved
    assert repos.versions.find_by_id(version.id).status == VersionStatus.approved
    outcomes = {effect.name: effect for effect in result.side_effects}
    assert outcomes["audit_log"].ok is False
    assert "audit sink unavailable" in outcomes["audit_log"].error
    assert outcomes["game_history"].ok is True
    assert len(repos.audit.list_history(game.id)) == 1
