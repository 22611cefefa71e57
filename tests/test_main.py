import importlib
import io
import json
from pathlib import Path

import pytest

from coding_agent import main as cli
from coding_agent.agent import Agent
from coding_agent.tools import ToolContext
from coding_agent.utils import config as config_module
logger_module = importlib.import_module("coding_agent.utils.logger")
from coding_agent.utils.config import (
    AgentConfig,
    Config,
    ConfigurationError,
    IndexingConfig,
    LLMConfig,
    reset_config,
)
from tests.fakes import ScriptedModel, ToolHungryModel, answer, calls, tool_call


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        llm=LLMConfig(provider="ollama", api_key=None, model="llama3", embedding_model="nomic-embed-text"),
        agent=AgentConfig(
            index_path=tmp_path / "index.json",
            root_dir=tmp_path,
            max_turns=15,
            top_k=5,
            confine_paths=True,
        ),
        indexing=IndexingConfig(chunk_size=2000, chunk_overlap=200, max_file_bytes=100 * 1024, batch_size=50),
        log_level="info",
    )


def _use_model(monkeypatch, model, max_turns: int = 15) -> None:
    def from_config(config=None):
        return Agent(
            model,
            tool_context=ToolContext(root=config.agent.root_dir),
            max_turns=max_turns,
        )
    monkeypatch.setattr(Agent, "from_config", staticmethod(from_config))


def test_parser_run_command() -> None:
    args = cli.build_parser().parse_args(
        ["run", "Where is main?", "--max-turns", "3", "--top-k", "2", "--no-confine"]
    )

    assert args.command == "run"
    assert args.query == "Where is main?"
    assert args.max_turns == 3
    assert args.top_k == 2
    assert args.no_confine is True


def test_apply_overrides(config, tmp_path) -> None:
    args = cli.build_parser().parse_args(
        ["run", "q", "--index", "other.json", "--max-turns", "3", "--no-confine"]
    )

    updated = cli.apply_overrides(config, args)

    assert updated.agent.index_path == Path("other.json")
    assert updated.agent.max_turns == 3
    assert updated.agent.confine_paths is False
    assert updated.agent.top_k == 5
    assert config.agent.max_turns == 15


def test_apply_overrides_rejects_zero_turns(config) -> None:
    args = cli.build_parser().parse_args(["run", "q", "--max-turns", "0"])

    with pytest.raises(ConfigurationError):
        cli.apply_overrides(config, args)


def test_load_history(tmp_path) -> None:
    path = tmp_path / "history.json"
    path.write_text(json.dumps([{"role": "user", "content": "hi"}]))

    assert cli.load_history(path) == [{"role": "user", "content": "hi"}]
    assert cli.load_history(None) == []


@pytest.mark.parametrize("content", ['{"role": "user"}', "not json"])
def test_load_history_rejects_bad_files(tmp_path, content) -> None:
    path = tmp_path / "history.json"
    path.write_text(content)

    with pytest.raises(ConfigurationError):
        cli.load_history(path)


def test_load_history_missing_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        cli.load_history(tmp_path / "missing.json")


@pytest.mark.asyncio
async def test_run_query_streams_ndjson_and_exits_zero(monkeypatch, config) -> None:
    _use_model(monkeypatch, ScriptedModel([calls(tool_call("list_files")), answer("Nothing here")]))
    out = io.StringIO()

    exit_code = await cli.run_query(config, "What is here?", [], out=out)

    lines = out.getvalue().splitlines()
    assert exit_code == cli.EXIT_OK
    assert [json.loads(line)["type"] for line in lines] == ["tool_start", "tool_result", "message"]
    assert json.loads(lines[-1])["content"] == "Nothing here"


@pytest.mark.asyncio
async def test_run_query_exit_code_on_model_error(monkeypatch, config) -> None:
    _use_model(monkeypatch, ScriptedModel([RuntimeError("offline")]))
    out = io.StringIO()

    assert await cli.run_query(config, "q", [], out=out) == cli.EXIT_ERROR
    assert json.loads(out.getvalue()) == {"type": "error", "description": "offline"}


@pytest.mark.asyncio
async def test_run_query_exit_code_on_exhausted_budget(monkeypatch, config) -> None:
    _use_model(monkeypatch, ToolHungryModel(), max_turns=2)
    out = io.StringIO()

    assert await cli.run_query(config, "q", [], out=out) == cli.EXIT_EXHAUSTED
    assert json.loads(out.getvalue().splitlines()[-1]) == {"type": "turns_exhausted", "turns": 2}


@pytest.mark.asyncio
async def test_run_index_writes_text_only_index_without_embedder(monkeypatch, config, tmp_path) -> None:
    (tmp_path / "app.py").write_text("print('hi')")
    monkeypatch.setattr("coding_agent.llm.factory.create_embedder", lambda llm_config: None)

    assert await cli.run_index(config) == cli.EXIT_OK

    records = json.loads((tmp_path / "index.json").read_text())
    assert records == [{"path": "app.py", "content": "print('hi')"}]


@pytest.mark.asyncio
async def test_main_reports_configuration_errors(monkeypatch) -> None:
    def broken_config():
        raise ConfigurationError("Missing required environment variable: OPENAI_API_KEY")

    monkeypatch.setattr(cli, "get_config", broken_config)

    assert await cli.main(["run", "q"]) == cli.EXIT_ERROR


@pytest.fixture
def no_credentials(monkeypatch):
    for name in ("LLM_PROVIDER", "LLM_API_KEY", "OPENAI_API_KEY", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "load_dotenv", lambda: False)
    monkeypatch.setattr(logger_module, "_default_level", logger_module.LogLevel.INFO)
    reset_config()
    yield
    reset_config()


@pytest.mark.asyncio
async def test_index_command_without_api_key_writes_text_only_index(no_credentials, tmp_path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("def main(): ...")
    output = tmp_path / "idx.json"

    exit_code = await cli.main(["index", "--root", str(tmp_path), "--output", str(output)])

    assert exit_code == cli.EXIT_OK
    assert json.loads(output.read_text()) == [{"path": "src/app.py", "content": "def main(): ..."}]


@pytest.mark.asyncio
async def test_run_command_without_api_key_is_a_configuration_error(no_credentials, tmp_path) -> None:
    exit_code = await cli.main(["run", "q", "--root", str(tmp_path), "--index", str(tmp_path / "idx.json")])

    assert exit_code == cli.EXIT_ERROR
