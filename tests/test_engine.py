"""Tests for squadboard.board.engine module."""

from dataclasses import replace

import pytest

from squadboard.board.engine import (
    board_summary,
    create_card,
    list_board,
    move_card,
    request_create_pr,
    upsert_lane_assignment,
)
from squadboard.board.errors import BoardError
from squadboard.board.review import set_pr_url, submit_human_review
from squadboard.sessions import PromptDispatcher, SessionError, SessionGateway

from conftest import AGENT_ID, PROJECT_ID, REPO, SQUAD_ID, FakeSessionGateway


class UndeliverableGateway(FakeSessionGateway):
    """Prompts go through the real dispatcher and every delivery fails."""

    send_prompt_async = SessionGateway.send_prompt_async

    def send_prompt(self, session, text):
        self.sent.append((session.id, text))
        raise SessionError("agent runtime crashed")


class TestCreateCard:
    """Test card creation."""

    def test_card_starts_in_todo_with_derived_title(self, ctx):
        card = create_card(ctx, PROJECT_ID, SQUAD_ID, "Fix login bug\n\nDetails...")
        assert card.lane == "todo"
        assert card.title == "Fix login bug"
        assert ctx.store.get(card.id) == card

    def test_positions_append_within_squad_lane(self, ctx):
        first = create_card(ctx, PROJECT_ID, SQUAD_ID, "one")
        second = create_card(ctx, PROJECT_ID, SQUAD_ID, "two")
        other = create_card(ctx, PROJECT_ID, "other", "three")
        assert (first.position, second.position, other.position) == (0, 1, 0)

    def test_unknown_project_is_not_found(self, ctx):
        with pytest.raises(BoardError) as exc:
            create_card(ctx, "nope", SQUAD_ID, "body")
        assert exc.value.reason == "not_found"


class TestMoveValidation:
    """Test move preconditions."""

    def test_missing_card(self, ctx):
        with pytest.raises(BoardError) as exc:
            move_card(ctx, "0123456789ab", "todo")
        assert exc.value.reason == "not_found"

    def test_path_like_id_takes_no_lock(self, ctx):
        with pytest.raises(BoardError) as exc:
            move_card(ctx, "../../escaped", "todo")
        assert exc.value.reason == "not_found"
        assert list(ctx.home.rglob("*.lock")) == []
        assert not (ctx.home.parent / "escaped.lock").exists()

    def test_invalid_lane(self, ctx, card):
        with pytest.raises(BoardError) as exc:
            move_card(ctx, card.id, "shipping")
        assert exc.value.reason == "invalid_lane"

    def test_direct_move_to_done_is_forbidden(self, ctx, card, sessions):
        with pytest.raises(BoardError) as exc:
            move_card(ctx, card.id, "done")
        assert exc.value.reason == "forbidden"
        assert ctx.store.get(card.id) == card
        assert sessions.created == []

    def test_done_forbidden_even_with_pr_url(self, ctx, card):
        set_pr_url(ctx, card.id, "https://github.com/acme/widgets/pull/7")
        with pytest.raises(BoardError) as exc:
            move_card(ctx, card.id, "done")
        assert exc.value.reason == "forbidden"

    def test_move_to_todo_has_no_side_effects(self, ctx, card, sessions, worktrees):
        moved = move_card(ctx, card.id, "todo")
        assert moved.lane == "todo"
        assert sessions.created == []
        assert sessions.dispatched == []
        assert worktrees.calls == []


class TestUnassignedLane:
    """A lane without an agent fails before any side effect."""

    def test_plan_unassigned_has_zero_side_effects(self, ctx, card, sessions, worktrees, repo_path):
        upsert_lane_assignment(ctx, PROJECT_ID, SQUAD_ID, "plan", None)

        with pytest.raises(BoardError) as exc:
            move_card(ctx, card.id, "plan")

        assert exc.value.reason == "lane_unassigned"
        assert exc.value.details["lane"] == "plan"
        assert sessions.created == []
        assert sessions.dispatched == []
        assert worktrees.calls == []
        assert not (repo_path / ".squads" / "prds").exists()
        assert ctx.store.get(card.id) == card

    def test_unknown_squad_is_unassigned(self, ctx, worktrees):
        card = create_card(ctx, PROJECT_ID, "ghost-squad", "body")
        with pytest.raises(BoardError) as exc:
            move_card(ctx, card.id, "build")
        assert exc.value.reason == "lane_unassigned"
        assert worktrees.calls == []


class TestPlanLane:
    """Test moving a card into plan."""

    def test_allocates_prd_and_session(self, ctx, card, sessions, repo_path):
        moved = move_card(ctx, card.id, "plan")

        assert moved.lane == "plan"
        assert moved.prd_path == ".squads/prds/001-fix-login-bug.md"
        assert moved.plan_agent_id == AGENT_ID
        assert moved.plan_session_id == sessions.created[0].id
        assert sessions.created[0].title == "PLAN: Fix login bug"
        assert (repo_path / ".squads" / "prds").is_dir()
        assert ctx.store.get(card.id) == moved

    def test_next_prd_sequence(self, ctx, card, repo_path):
        prds = repo_path / ".squads" / "prds"
        prds.mkdir(parents=True)
        (prds / "001-foo.md").write_text("")
        (prds / "002-bar.md").write_text("")

        moved = move_card(ctx, card.id, "plan")
        assert moved.prd_path == ".squads/prds/003-fix-login-bug.md"

    def test_dispatches_plan_prompt(self, ctx, card, sessions):
        moved = move_card(ctx, card.id, "plan")

        assert len(sessions.dispatched) == 1
        session_id, prompts = sessions.dispatched[0]
        assert session_id == moved.plan_session_id
        assert len(prompts) == 1
        assert "PLAN agent for squad Core Squad" in prompts[0]
        assert "Details about the bug." in prompts[0]
        assert moved.prd_path in prompts[0]
        assert f'"repo": "{REPO}"' in prompts[0]

    def test_failed_delivery_keeps_the_move(self, ctx, card, caplog):
        gateway = UndeliverableGateway()
        gateway.dispatcher = PromptDispatcher(max_workers=1)
        ctx = replace(ctx, sessions=gateway)

        moved = move_card(ctx, card.id, "plan")
        gateway.dispatcher.shutdown(wait=True)

        assert [session_id for session_id, _ in gateway.sent] == [moved.plan_session_id]
        stored = ctx.store.get(card.id)
        assert stored.lane == "plan"
        assert stored.plan_session_id == moved.plan_session_id
        assert f"prompt -> {moved.plan_session_id} failed" in caplog.text

    def test_replan_keeps_prd_and_reuses_session(self, ctx, card, sessions):
        first = move_card(ctx, card.id, "plan")
        move_card(ctx, card.id, "todo")
        again = move_card(ctx, card.id, "plan")

        assert again.prd_path == first.prd_path
        assert again.plan_session_id == first.plan_session_id
        assert len(sessions.created) == 1
        assert len(sessions.dispatched) == 2


class TestBuildLane:
    """Test moving a card into build."""

    def test_success_path(self, ctx, card, sessions, worktrees, repo_path):
        worktrees.branch = "develop"

        moved = move_card(ctx, card.id, "build")

        assert moved.lane == "build"
        assert moved.build_session_id is not None
        assert moved.build_agent_id == AGENT_ID
        assert moved.build_branch == f"squads/{AGENT_ID}-{card.id}"
        assert moved.build_worktree_name == f"{AGENT_ID}-{card.id}"
        assert moved.build_worktree_path == str(repo_path / ".squads" / "worktrees" / f"{AGENT_ID}-{card.id}")
        assert moved.base_branch == "develop"
        assert worktrees.calls == [(PROJECT_ID, AGENT_ID, card.id)]

        session = sessions.created[0]
        assert session.title == "BUILD: Fix login bug"
        assert session.worktree_path == moved.build_worktree_path
        assert session.branch == moved.build_branch

    def test_build_prompt_context(self, ctx, card, sessions):
        moved = move_card(ctx, card.id, "build")
        prompt = sessions.dispatched[0][1][0]
        assert f"- Branch: {moved.build_branch}" in prompt
        assert "- Base branch: main" in prompt
        assert f"- Worktree directory: {moved.build_worktree_path}" in prompt
        assert "Existing PR" not in prompt
        assert "PR description requirements" not in prompt

    def test_build_prompt_lists_issue_closing_lines(self, ctx, card, sessions):
        refs = [
            {"repo": REPO, "number": 4, "url": f"https://github.com/{REPO}/issues/4", "soft_state": "open"},
            {"repo": REPO, "number": 5, "url": f"https://github.com/{REPO}/issues/5", "soft_state": "open"},
        ]
        ctx.store.update(card, {"issue_refs": refs, "pr_url": "https://github.com/acme/widgets/pull/9"})

        move_card(ctx, card.id, "build")
        prompt = sessions.dispatched[0][1][0]
        assert f"Closes {REPO}#4\nCloses {REPO}#5" in prompt
        assert f"https://github.com/{REPO}/issues/4" in prompt
        assert "- Existing PR: https://github.com/acme/widgets/pull/9" in prompt

    def test_worktree_failure_leaves_card_untouched(self, ctx, card, sessions, worktrees):
        worktrees.error = "git worktree add timed out after 60s"

        with pytest.raises(BoardError) as exc:
            move_card(ctx, card.id, "build")

        assert exc.value.reason == "provisioning_failed"
        assert exc.value.details["step"] == "worktree"
        assert sessions.created == []
        assert sessions.dispatched == []
        assert ctx.store.get(card.id) == card

    def test_session_failure_leaves_card_untouched(self, ctx, card, sessions):
        sessions.fail_create = True

        with pytest.raises(BoardError) as exc:
            move_card(ctx, card.id, "build")

        assert exc.value.reason == "provisioning_failed"
        assert exc.value.details["step"] == "session"
        assert sessions.dispatched == []
        assert ctx.store.get(card.id) == card

    def test_retry_after_failure_succeeds(self, ctx, card, sessions):
        sessions.fail_create = True
        with pytest.raises(BoardError):
            move_card(ctx, card.id, "build")

        sessions.fail_create = False
        moved = move_card(ctx, card.id, "build")
        assert moved.lane == "build"


class TestReviewLane:
    """Test moving a card into review."""

    def test_review_after_build_uses_build_worktree(self, ctx, card, sessions, worktrees):
        built = move_card(ctx, card.id, "build")
        worktrees.branch = "trunk"

        reviewed = move_card(ctx, card.id, "review")

        assert reviewed.lane == "review"
        assert reviewed.review_session_id == reviewed.ai_review_session_id
        assert reviewed.base_branch == built.base_branch
        session = sessions.created[-1]
        assert session.title == "REVIEW: Fix login bug"
        assert session.worktree_path == built.build_worktree_path
        assert session.branch == built.build_branch

    def test_review_without_build_uses_repo(self, ctx, card, sessions, repo_path, worktrees):
        worktrees.branch = "trunk"
        reviewed = move_card(ctx, card.id, "review")

        session = sessions.created[0]
        assert session.worktree_path == str(repo_path)
        assert session.branch == ""
        assert reviewed.base_branch == "trunk"
        assert worktrees.calls == []

    def test_review_prompt_mentions_pr(self, ctx, card, sessions):
        set_pr_url(ctx, card.id, "https://github.com/acme/widgets/pull/3")
        move_card(ctx, card.id, "review")
        prompt = sessions.dispatched[0][1][0]
        assert "- PR: https://github.com/acme/widgets/pull/3" in prompt
        assert "REVIEW agent for squad Core Squad" in prompt


class TestDoneCards:
    """Done cards can only be reopened to todo."""

    @pytest.fixture
    def done_card(self, ctx, card):
        set_pr_url(ctx, card.id, "https://github.com/acme/widgets/pull/1")
        return submit_human_review(ctx, card.id, "approved", "ship it")

    def test_done_card_cannot_start_lane(self, ctx, done_card, sessions):
        with pytest.raises(BoardError) as exc:
            move_card(ctx, done_card.id, "plan")
        assert exc.value.reason == "forbidden"
        assert sessions.created == []

    def test_done_card_can_be_reopened(self, ctx, done_card):
        assert move_card(ctx, done_card.id, "todo").lane == "todo"


class TestRequestCreatePR:
    """Test request_create_pr."""

    def test_starts_build_then_asks_for_pr(self, ctx, card, sessions):
        updated = request_create_pr(ctx, card.id)

        assert updated.lane == "build"
        assert updated.build_session_id is not None
        session_id, prompts = sessions.dispatched[0]
        assert session_id == updated.build_session_id
        assert len(prompts) == 2
        assert "BUILD agent" in prompts[0]
        assert prompts[1].startswith("Create a GitHub Pull Request")

    def test_reuses_existing_build_session(self, ctx, card, sessions):
        built = move_card(ctx, card.id, "build")
        ctx.store.update(built, {"issue_refs": [{"repo": REPO, "number": 2, "soft_state": "open"}]})

        request_create_pr(ctx, card.id)

        assert len(sessions.created) == 1
        session_id, prompts = sessions.dispatched[-1]
        assert session_id == built.build_session_id
        assert len(prompts) == 1
        assert f"Closes {REPO}#2" in prompts[0]

    def test_vanished_build_session(self, ctx, card, sessions):
        built = move_card(ctx, card.id, "build")
        del sessions.sessions[built.build_session_id]

        with pytest.raises(BoardError) as exc:
            request_create_pr(ctx, card.id)
        assert exc.value.reason == "session_not_found"


class TestBoardReads:
    """Test list_board / board_summary / lane assignment."""

    def test_summary_has_zero_for_empty_lanes(self, ctx, card):
        move_card(ctx, card.id, "plan")
        create_card(ctx, PROJECT_ID, SQUAD_ID, "another")
        assert board_summary(ctx, PROJECT_ID) == {"todo": 1, "plan": 1, "build": 0, "review": 0, "done": 0}

    def test_list_board(self, ctx, card):
        second = create_card(ctx, PROJECT_ID, SQUAD_ID, "second card")
        move_card(ctx, card.id, "plan")

        board = list_board(ctx, PROJECT_ID)

        assert [s.id for s in board["squads"]] == [SQUAD_ID]
        assert [c.id for c in board["cards"]] == [second.id, card.id]  # todo before plan
        assert {"project_id": PROJECT_ID, "squad_id": SQUAD_ID, "lane": "plan", "agent_id": AGENT_ID} in board["assignments"]

    def test_assignment_rejects_done_lane(self, ctx):
        with pytest.raises(BoardError) as exc:
            upsert_lane_assignment(ctx, PROJECT_ID, SQUAD_ID, "done", AGENT_ID)
        assert exc.value.reason == "invalid_lane"

    def test_assignment_is_used_by_move(self, ctx, card, sessions):
        upsert_lane_assignment(ctx, PROJECT_ID, SQUAD_ID, "plan", "blue-otter")
        moved = move_card(ctx, card.id, "plan")
        assert moved.plan_agent_id == "blue-otter"
        assert sessions.created[0].agent_id == "blue-otter"
