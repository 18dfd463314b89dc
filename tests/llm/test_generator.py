"""Tests for autotest.llm.generator."""

from __future__ import annotations

import io
import json
import subprocess

import pytest

from autotest.config import GeneratorConfig
from autotest.errors import GeneratorError
from autotest.llm import (
    CLIGenerator,
    GenerationContext,
    HTTPGenerator,
    PromptBuilder,
    build_generator,
    extract_code,
)

SOURCE = "export function add(a: number, b: number): number { return a + b; }\n"


def test_prompt_includes_source_framework_and_import_path() -> None:
    prompt = PromptBuilder().build("src/math.ts", SOURCE, GenerationContext(framework="vitest"))

    assert prompt.startswith("Generate comprehensive Vitest tests")
    assert "## File: src/math.ts" in prompt
    assert SOURCE.strip() in prompt
    assert "## Test Framework: vitest" in prompt
    assert "from '../src/math'" in prompt
    assert "## Project Context:" not in prompt


def test_prompt_embeds_project_context() -> None:
    context = GenerationContext(framework="jest", project_context="# Test Generation Context\n")

    prompt = PromptBuilder().build("src/math.ts", SOURCE, context)

    assert "## Project Context:\n# Test Generation Context\n" in prompt
    assert "Generate comprehensive Jest tests" in prompt


@pytest.mark.parametrize(
    ("output", "expected"),
    [
        ("Here you go:\n```typescript\nit('x', () => {});\n```\nDone.", "it('x', () => {});\n"),
        ("```ts\nfirst();\n```\n```ts\nsecond();\n```", "first();\n"),
        ("  plain();  \n", "plain();\n"),
        ("   \n", ""),
    ],
)
def test_extract_code(output: str, expected: str) -> None:
    assert extract_code(output) == expected


def test_cli_generator_builds_request() -> None:
    captured = {}

    def fake_runner(request):
        captured["request"] = request
        return "```typescript\ndescribe('add', () => {});\n```"

    generator = CLIGenerator("my-agent", request_timeout=30.0, runner=fake_runner)
    code = generator.generate("src/math.ts", SOURCE, GenerationContext(framework="jest"))

    request = captured["request"]
    assert code == "describe('add', () => {});\n"
    assert request.executable == "my-agent"
    assert request.timeout == 30.0
    assert "src/math.ts" in request.prompt


def test_context_timeout_overrides_generator_timeout() -> None:
    captured = {}

    def fake_runner(request):
        captured["timeout"] = request.timeout
        return "ok();"

    CLIGenerator(request_timeout=30.0, runner=fake_runner).generate(
        "a.ts", SOURCE, GenerationContext(framework="jest", timeout=5.0)
    )

    assert captured["timeout"] == 5.0


def test_cli_generator_rejects_empty_output() -> None:
    generator = CLIGenerator(runner=lambda request: "\n")

    with pytest.raises(GeneratorError, match="empty output"):
        generator.generate("a.ts", SOURCE, GenerationContext(framework="jest"))


def test_cli_runner_timeout_raises_generator_error(monkeypatch) -> None:
    def fake_run(args, **kwargs):
        raise subprocess.TimeoutExpired(args, kwargs.get("timeout"))

    monkeypatch.setattr("autotest.llm.generator.subprocess.run", fake_run)

    with pytest.raises(GeneratorError, match="timed out"):
        CLIGenerator().generate("a.ts", SOURCE, GenerationContext(framework="jest", timeout=1.0))


def test_cli_runner_missing_executable(monkeypatch) -> None:
    def fake_run(args, **kwargs):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr("autotest.llm.generator.subprocess.run", fake_run)

    with pytest.raises(GeneratorError, match="Unable to locate 'auggie'"):
        CLIGenerator().generate("a.ts", SOURCE, GenerationContext(framework="jest"))


def test_cli_runner_permission_error_raises_generator_error(monkeypatch) -> None:
    def fake_run(args, **kwargs):
        raise PermissionError(13, "Permission denied", args[0])

    monkeypatch.setattr("autotest.llm.generator.subprocess.run", fake_run)

    with pytest.raises(GeneratorError, match="Unable to run 'notexec'"):
        CLIGenerator("notexec").generate("a.ts", SOURCE, GenerationContext(framework="jest"))


def test_http_runner_undecodable_body_raises_generator_error(monkeypatch) -> None:
    monkeypatch.setattr("autotest.llm.generator.urlopen", lambda request, timeout: io.BytesIO(b"\xff\xfe{"))
    generator = HTTPGenerator("m", base_url="http://localhost:11434/v1")

    with pytest.raises(GeneratorError, match="invalid JSON"):
        generator.generate("a.ts", SOURCE, GenerationContext(framework="jest"))


def test_http_runner_connection_reset_raises_generator_error(monkeypatch) -> None:
    def fake_urlopen(request, timeout):
        raise ConnectionResetError("connection reset by peer")

    monkeypatch.setattr("autotest.llm.generator.urlopen", fake_urlopen)
    generator = HTTPGenerator("m", base_url="http://localhost:11434/v1")

    with pytest.raises(GeneratorError, match="connection failed"):
        generator.generate("a.ts", SOURCE, GenerationContext(framework="jest"))


def test_http_runner_reads_chat_completion(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout):
        captured["url"] = request.full_url
        captured["body"] = json.loads(request.data.decode("utf-8"))
        payload = {"choices": [{"message": {"content": "```ts\nit('a', () => {});\n```"}}]}
        return io.BytesIO(json.dumps(payload).encode("utf-8"))

    monkeypatch.setattr("autotest.llm.generator.urlopen", fake_urlopen)
    generator = HTTPGenerator("m", base_url="http://localhost:11434/v1")

    code = generator.generate("a.ts", SOURCE, GenerationContext(framework="jest"))

    assert code == "it('a', () => {});\n"
    assert captured["url"] == "http://localhost:11434/v1/chat/completions"
    assert captured["body"]["model"] == "m"


def test_http_generator_builds_request(monkeypatch) -> None:
    for key in HTTPGenerator.ENV_MODEL_KEYS + HTTPGenerator.ENV_BASE_URL_KEYS + HTTPGenerator.ENV_API_KEY_KEYS:
        monkeypatch.delenv(key, raising=False)
    captured = {}

    def fake_runner(request):
        captured["request"] = request
        return "```ts\nit('works', () => {});\n```"

    generator = HTTPGenerator(runner=fake_runner)
    code = generator.generate("src/math.ts", SOURCE, GenerationContext(framework="vitest"))

    request = captured["request"]
    assert code == "it('works', () => {});\n"
    assert request.model == HTTPGenerator.DEFAULT_MODEL
    assert request.base_url == "http://localhost:11434/v1"
    assert request.system
    assert request.api_key is None


def test_http_generator_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("AUTOTEST_LLM_MODEL", "coder")
    monkeypatch.setenv("AUTOTEST_LLM_BASE_URL", "http://127.0.0.1:8080/v1/")
    monkeypatch.setenv("AUTOTEST_LLM_API_KEY", "secret")

    generator = HTTPGenerator(runner=lambda request: "")

    assert generator.model == "coder"
    assert generator.base_url == "http://127.0.0.1:8080/v1"
    assert generator.api_key == "secret"


def test_http_generator_rejects_remote_url() -> None:
    with pytest.raises(GeneratorError, match="not permitted"):
        HTTPGenerator(base_url="https://api.example.com/v1", runner=lambda request: "")


def test_build_generator_selection() -> None:
    assert build_generator(None) is None
    assert build_generator(GeneratorConfig(provider="none")) is None
    assert isinstance(build_generator(None, provider="cli"), CLIGenerator)

    config = GeneratorConfig(provider="http", model="m", base_url="http://localhost:1234/v1")
    generator = build_generator(config)
    assert isinstance(generator, HTTPGenerator)
    assert generator.model == "m"


def test_provider_argument_overrides_config() -> None:
    config = GeneratorConfig(provider="http", executable="agent")

    generator = build_generator(config, provider="cli")

    assert isinstance(generator, CLIGenerator)
    assert generator.executable == "agent"


def test_unknown_provider_raises() -> None:
    with pytest.raises(GeneratorError, match="Unknown generator provider"):
        build_generator(None, provider="cloud")
