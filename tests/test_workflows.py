# tests/test_workflows.py
"""
Plan / generate / run / fix workflows end to end against in-memory fakes.
"""
import asyncio
import pytest
from unittest.mock import AsyncMock, patch

from zyro.core.config import settings
from zyro.core.exceptions import SandboxError
from zyro.core.types import AiProvider, MessageRole, MessageType
from zyro.db.store import FragmentDraft
from zyro.workflow.checkpoint import StepRunner
from zyro.workflow.functions import WORKFLOWS, generate_workflow

from conftest import ScriptedLLM, text_reply, write_files_reply


SUMMARY = "<task_summary>Built a todo app with add and delete.</task_summary>"


def _script_success(models):
    models.by_purpose["code"] = ScriptedLLM([
        write_files_reply({"app/page.tsx": "export default function Page() {}"}),
        text_reply(SUMMARY),
    ])
    models.by_purpose["title"] = ScriptedLLM([text_reply("Todo App")])
    models.by_purpose["response"] = ScriptedLLM([text_reply("I built a todo app for you.")])


async def _send_and_wait(engine, event, data):
    run_id = await engine.send(event, data)
    await engine.wait(run_id)
    return run_id


# ═══════════════════════════════════════════════════════
# PLAN
# ═══════════════════════════════════════════════════════

class TestPlanWorkflow:

    @pytest.mark.asyncio
    async def test_no_credentials_yields_single_error_message(self, store, engine):
        project = await store.create_project("keyless", "p")

        run_id = await _send_and_wait(engine, "code-agent/plan", {"projectId": project.id, "value": "a blog"})

        errors = store.messages_of(project.id, MessageType.ERROR)
        assert len(errors) == 1
        assert "No API key configured" in errors[0].content
        assert store.messages_of(project.id, MessageType.PLAN) == []
        assert store.runs[run_id].status == "completed"

    @pytest.mark.asyncio
    async def test_plan_is_persisted(self, store, engine, models, user_with_key):
        models.by_purpose["code"] = ScriptedLLM([text_reply("## Plan\n- Todo list page")])
        project_id = user_with_key["project_id"]

        await _send_and_wait(engine, "code-agent/plan", {"projectId": project_id, "value": "Build a todo app"})

        plans = store.messages_of(project_id, MessageType.PLAN)
        assert [p.content for p in plans] == ["## Plan\n- Todo list page"]
        assert plans[0].role == MessageRole.ASSISTANT
        assert models.requested[0] == (AiProvider.GEMINI, "gm-secret-key-1234", "code")

    @pytest.mark.asyncio
    async def test_empty_plan_uses_fallback_text(self, store, engine, models, user_with_key):
        models.by_purpose["code"] = ScriptedLLM([text_reply("")])
        project_id = user_with_key["project_id"]

        await _send_and_wait(engine, "code-agent/plan", {"projectId": project_id, "value": "x"})

        assert store.messages_of(project_id, MessageType.PLAN)[0].content == "Failed to generate plan."

    @pytest.mark.asyncio
    async def test_history_window_is_last_five_oldest_first(self, store, engine, models, user_with_key):
        project_id = user_with_key["project_id"]
        for i in range(7):
            await store.create_message(project_id, f"turn {i}", MessageRole.USER, MessageType.RESULT)
        await store.create_message(project_id, "", MessageRole.ASSISTANT, MessageType.RESULT)
        models.by_purpose["code"] = ScriptedLLM([text_reply("plan")])

        await _send_and_wait(engine, "code-agent/plan", {"projectId": project_id, "value": "next"})

        sent = [m.content for m in models.by_purpose["code"].calls[0]["messages"]]
        assert sent == ["turn 3", "turn 4", "turn 5", "turn 6", "next"]


# ═══════════════════════════════════════════════════════
# GENERATE
# ═══════════════════════════════════════════════════════

class TestGenerateWorkflow:

    @pytest.mark.asyncio
    async def test_success_creates_one_result_with_fragment(self, store, engine, models, sandbox, user_with_key):
        _script_success(models)
        project_id = user_with_key["project_id"]

        run_id = await _send_and_wait(engine, "code-agent/generate", {"projectId": project_id, "value": "go"})

        results = store.messages_of(project_id, MessageType.RESULT)
        generated = [m for m in results if m.role == MessageRole.ASSISTANT]
        assert len(generated) == 1
        message = generated[0]
        assert message.content == "I built a todo app for you."
        assert len(store.fragments) == 1
        fragment = message.fragment
        assert fragment.sandbox_id == sandbox.created[0]
        assert fragment.title == "Todo App"
        assert fragment.files == {"app/page.tsx": "export default function Page() {}"}
        assert fragment.sandbox_url.startswith("https://")
        assert store.runs[run_id].status == "completed"

    @pytest.mark.asyncio
    async def test_no_files_is_failure_without_fragment(self, store, engine, models, sandbox, user_with_key):
        models.by_purpose["code"] = ScriptedLLM([text_reply(SUMMARY)])
        project_id = user_with_key["project_id"]

        run_id = await _send_and_wait(engine, "code-agent/generate", {"projectId": project_id, "value": "go"})

        errors = store.messages_of(project_id, MessageType.ERROR)
        assert [e.content for e in errors] == ["Something went wrong. Please try again."]
        assert store.fragments == {}
        assert store.runs[run_id].status == "completed"
        # Auxiliary steps and the liveness check run on failure too
        assert (run_id, "generate-fragment-title") in store.steps
        assert (run_id, "get-sandbox-url") in store.steps
        assert any("curl" in c for _, c in sandbox.commands)

    @pytest.mark.asyncio
    async def test_no_summary_after_ceiling_is_failure(self, store, engine, models, user_with_key, monkeypatch):
        monkeypatch.setattr(settings.workflow, "max_iterations", 3)
        models.by_purpose["code"] = ScriptedLLM(
            [write_files_reply({"a.tsx": "a"})],
            default=text_reply("still going"),
        )
        project_id = user_with_key["project_id"]

        await _send_and_wait(engine, "code-agent/generate", {"projectId": project_id, "value": "go"})

        assert len(models.by_purpose["code"].calls) == 3
        assert len(store.messages_of(project_id, MessageType.ERROR)) == 1
        assert store.fragments == {}
        assert models.by_purpose["title"].calls == []
        assert models.by_purpose["response"].calls == []

    @pytest.mark.asyncio
    async def test_missing_credentials_short_circuits(self, store, engine, sandbox):
        project = await store.create_project("keyless", "p")

        await _send_and_wait(engine, "code-agent/generate", {"projectId": project.id, "value": "go"})

        assert len(store.messages_of(project.id, MessageType.ERROR)) == 1
        assert sandbox.created == []

    @pytest.mark.asyncio
    async def test_reuses_given_sandbox(self, store, engine, models, sandbox, user_with_key):
        existing = await sandbox.create()
        _script_success(models)

        await _send_and_wait(engine, "code-agent/generate", {
            "projectId": user_with_key["project_id"], "value": "go", "sandboxId": existing,
        })

        assert sandbox.created == [existing]
        assert sandbox.reconnected == [existing]
        assert next(iter(store.fragments.values())).sandbox_id == existing

    @pytest.mark.asyncio
    async def test_dev_server_started_when_not_serving(self, store, engine, models, sandbox, user_with_key):
        _script_success(models)
        sandbox.http_status = "000"
        sandbox.start_serves = True

        await _send_and_wait(engine, "code-agent/generate", {"projectId": user_with_key["project_id"], "value": "go"})

        commands = [c for _, c in sandbox.commands]
        assert any("npm run dev > /tmp/nextjs.log" in c for c in commands)
        assert len(store.fragments) == 1

    @pytest.mark.asyncio
    async def test_url_returned_even_if_never_serving(self, store, engine, models, sandbox, user_with_key):
        _script_success(models)
        sandbox.http_status = "502"

        await _send_and_wait(engine, "code-agent/generate", {"projectId": user_with_key["project_id"], "value": "go"})

        fragment = next(iter(store.fragments.values()))
        assert fragment.sandbox_url == f"https://3000-{sandbox.created[0]}.e2b.app"
        curls = [c for _, c in sandbox.commands if "curl" in c]
        assert len(curls) == 1 + settings.sandbox.startup_probes

    @pytest.mark.asyncio
    async def test_sandbox_failure_is_generic_run_failure(self, store, engine, models, sandbox, user_with_key):
        _script_success(models)
        sandbox.create = AsyncMock(side_effect=SandboxError("new", "quota exceeded"))
        project_id = user_with_key["project_id"]

        run_id = await _send_and_wait(engine, "code-agent/generate", {"projectId": project_id, "value": "go"})

        errors = store.messages_of(project_id, MessageType.ERROR)
        assert [e.content for e in errors] == ["Something went wrong. Please try again."]
        assert "quota" not in errors[0].content
        assert store.runs[run_id].status == "failed"
        assert "quota exceeded" in store.runs[run_id].error

    @pytest.mark.asyncio
    async def test_undecryptable_key_fails_run_with_message(self, store, engine, user_with_key):
        row = await store.find_credential("user-1", AiProvider.GEMINI)
        row.ciphertext = bytes([row.ciphertext[0] ^ 0x01]) + row.ciphertext[1:]
        project_id = user_with_key["project_id"]

        run_id = await _send_and_wait(engine, "code-agent/generate", {"projectId": project_id, "value": "go"})

        errors = store.messages_of(project_id, MessageType.ERROR)
        assert [e.content for e in errors] == [settings.workflow.decryption_failure_message]
        assert store.runs[run_id].status == "failed"

    @pytest.mark.asyncio
    async def test_unknown_project_fails_without_message(self, store, engine):
        run_id = await _send_and_wait(engine, "code-agent/generate", {"projectId": "nope", "value": "go"})

        assert store.messages == []
        assert store.runs[run_id].status == "failed"


# ═══════════════════════════════════════════════════════
# CRASH RECOVERY
# ═══════════════════════════════════════════════════════

class TestResume:

    @pytest.mark.asyncio
    async def test_resumed_run_does_not_repeat_side_effects(self, store, context, models, sandbox, user_with_key):
        _script_success(models)
        data = {"projectId": user_with_key["project_id"], "value": "go"}
        await store.create_run("run-crash", "code-agent/generate", data)

        # Process dies while verifying the sandbox
        with patch.object(context.monitor, "ensure_serving", AsyncMock(side_effect=RuntimeError("killed"))):
            with pytest.raises(RuntimeError):
                await generate_workflow(context, StepRunner("run-crash", store), data)

        code_calls = len(models.by_purpose["code"].calls)
        assert store.fragments == {}

        resumed = StepRunner("run-crash", store)
        result = await generate_workflow(context, resumed, data)

        assert sandbox.created == [result["sandbox_id"]]
        assert len(models.by_purpose["code"].calls) == code_calls
        assert len(models.by_purpose["title"].calls) == 1
        assert len(store.fragments) == 1
        assert resumed.replayed > 0

    @pytest.mark.asyncio
    async def test_save_is_idempotent_across_replays(self, store, context, models, user_with_key):
        _script_success(models)
        data = {"projectId": user_with_key["project_id"], "value": "go"}

        await generate_workflow(context, StepRunner("run-1", store), data)
        # Drop the save step record as if the process died right after the insert
        store.steps.pop(("run-1", "save-result"))
        await generate_workflow(context, StepRunner("run-1", store), data)

        assert len(store.fragments) == 1

    @pytest.mark.asyncio
    async def test_engine_resumes_running_runs(self, store, engine, models, user_with_key):
        _script_success(models)
        await store.create_run("run-left", "code-agent/generate", {"projectId": user_with_key["project_id"], "value": "go"})

        assert await engine.resume_incomplete_runs() == 1
        await engine.wait("run-left")

        assert store.runs["run-left"].status == "completed"
        assert len(store.fragments) == 1

    @pytest.mark.asyncio
    async def test_same_run_never_executes_concurrently(self, engine):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow(ctx, step, data):
            started.set()
            await release.wait()
            return {}

        with patch.dict(WORKFLOWS, {"code-agent/plan": slow}):
            first = asyncio.create_task(engine.execute("run-x", "code-agent/plan", {"projectId": "p"}))
            await started.wait()
            assert await engine.execute("run-x", "code-agent/plan", {"projectId": "p"}) is None
            release.set()
            assert await first == "completed"

    @pytest.mark.asyncio
    async def test_resumed_run_of_retired_event_fails_cleanly(self, store, engine, user_with_key):
        project_id = user_with_key["project_id"]
        await store.create_run("run-old", "code-agent/deploy", {"projectId": project_id})

        assert await engine.execute("run-old", "code-agent/deploy", {"projectId": project_id}) == "failed"

        assert "WorkflowError" in store.runs["run-old"].error
        errors = store.messages_of(project_id, MessageType.ERROR)
        assert [m.content for m in errors] == [settings.workflow.failure_message]


# ═══════════════════════════════════════════════════════
# RUN / FIX
# ═══════════════════════════════════════════════════════

class TestRunAndFix:

    @pytest.mark.asyncio
    async def test_run_plans_then_generates(self, store, engine, models, user_with_key):
        models.by_purpose["code"] = ScriptedLLM([
            text_reply("## Plan"),
            write_files_reply({"app/page.tsx": "x"}),
            text_reply(SUMMARY),
        ])
        models.by_purpose["title"] = ScriptedLLM([text_reply("Todo")])
        models.by_purpose["response"] = ScriptedLLM([text_reply("Done!")])
        project_id = user_with_key["project_id"]

        await _send_and_wait(engine, "code-agent/run", {"projectId": project_id, "value": "Build a todo app"})

        types = [m.type for m in store.messages_of(project_id) if m.role == MessageRole.ASSISTANT]
        assert types == [MessageType.PLAN, MessageType.RESULT]

    @pytest.mark.asyncio
    async def test_fix_recreates_reclaimed_sandbox_and_restores_files(self, store, engine, models, sandbox, user_with_key):
        project_id = user_with_key["project_id"]
        message = await store.create_message(
            project_id, "first", MessageRole.ASSISTANT, MessageType.RESULT,
            fragment=FragmentDraft(sandbox_id="sbx-old", sandbox_url="https://old", title="T", files={"app/page.tsx": "v1"}),
        )
        sandbox.unavailable.add("sbx-old")
        models.by_purpose["code"] = ScriptedLLM([
            write_files_reply({"app/extra.tsx": "new"}),
            text_reply(SUMMARY),
        ])

        await _send_and_wait(engine, "code-agent/fix", {
            "projectId": project_id, "value": "add a footer", "fragmentId": message.fragment.id,
        })

        new_id = sandbox.created[0]
        assert sandbox.files[new_id]["app/page.tsx"] == "v1"
        latest = store.messages_of(project_id, MessageType.RESULT)[-1]
        assert latest.fragment.sandbox_id == new_id
        assert latest.fragment.files == {"app/page.tsx": "v1", "app/extra.tsx": "new"}

    @pytest.mark.asyncio
    async def test_send_rejects_unknown_event(self, engine):
        from zyro.core.exceptions import InvalidInputError
        with pytest.raises(InvalidInputError):
            await engine.send("code-agent/deploy", {"projectId": "p"})
        with pytest.raises(InvalidInputError):
            await engine.send("code-agent/fix", {"projectId": "p"})
