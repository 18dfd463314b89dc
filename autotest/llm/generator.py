"""Enhanced test generators backed by an external CLI or a local model server."""

from __future__ import annotations

import ipaddress
import json
import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from jinja2 import Environment, FileSystemLoader

from ..config import GeneratorConfig
from ..errors import GeneratorError
from ..synthesis.renderer import module_specifier

DEFAULT_TIMEOUT = 120.0

_TEMPLATES_DIR = Path(__file__).with_name("templates")
_FENCED_BLOCK = re.compile(r"```[\w+-]*\n(?P<body>.*?)```", re.DOTALL)

SYSTEM_PROMPT = (
    "You write TypeScript unit tests. Reply with the complete test file only, "
    "without commentary."
)


@dataclass
class GenerationContext:
    """Per-file inputs handed to an enhanced generator."""

    framework: str
    project_context: str = ""
    timeout: Optional[float] = None


@dataclass
class GeneratorRequest:
    """A single prompt invocation against an external generator."""

    prompt: str
    system: Optional[str]
    executable: Optional[str]
    model: Optional[str]
    base_url: Optional[str]
    api_key: Optional[str]
    timeout: Optional[float]


class TestGenerator(Protocol):
    """Produces full test-file text or raises :class:`GeneratorError`."""

    def generate(self, path: str, text: str, context: GenerationContext) -> str:
        ...


class PromptBuilder:
    """Renders generation prompts from Jinja templates."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir or _TEMPLATES_DIR
        loader = FileSystemLoader(str(self.templates_dir))
        self._env = Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)

    def build(self, path: str, text: str, context: GenerationContext) -> str:
        template = self._env.get_template("generate.md.j2")
        return template.render(
            path=path,
            source=text,
            framework=context.framework,
            framework_label="Vitest" if context.framework == "vitest" else "Jest",
            project_context=context.project_context.strip(),
            module_specifier=module_specifier(path),
        )


def extract_code(output: str) -> str:
    """Return the first fenced code block in ``output``, or the whole text stripped."""
    match = _FENCED_BLOCK.search(output)
    if match:
        return match.group("body").strip() + "\n"
    stripped = output.strip()
    return stripped + "\n" if stripped else ""


class CLIGenerator:
    """Runs an agent CLI in print mode (``<executable> -p <prompt>``) and keeps its stdout."""

    DEFAULT_EXECUTABLE = "auggie"

    def __init__(
        self,
        executable: str | None = None,
        *,
        prompt_builder: PromptBuilder | None = None,
        request_timeout: Optional[float] = None,
        runner: Callable[[GeneratorRequest], str] | None = None,
    ) -> None:
        self.executable = executable or self.DEFAULT_EXECUTABLE
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.request_timeout = request_timeout
        self._runner = runner or self._cli_runner

    def generate(self, path: str, text: str, context: GenerationContext) -> str:
        request = GeneratorRequest(
            prompt=self.prompt_builder.build(path, text, context),
            system=None,
            executable=self.executable,
            model=None,
            base_url=None,
            api_key=None,
            timeout=context.timeout or self.request_timeout or DEFAULT_TIMEOUT,
        )
        code = extract_code(self._runner(request))
        if not code:
            raise GeneratorError(f"{self.executable} returned empty output for {path}")
        return code

    @staticmethod
    def _cli_runner(request: GeneratorRequest) -> str:
        args = [request.executable or CLIGenerator.DEFAULT_EXECUTABLE, "-p", request.prompt]
        try:
            completed = subprocess.run(
                args,
                check=True,
                capture_output=True,
                text=True,
                timeout=request.timeout,
            )
        except FileNotFoundError as exc:
            raise GeneratorError(f"Unable to locate '{request.executable}' on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise GeneratorError(
                f"{request.executable} timed out after {request.timeout:.0f}s"
            ) from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            raise GeneratorError(
                f"{request.executable} failed with exit code {exc.returncode}: {stderr}"
            ) from exc
        except OSError as exc:
            raise GeneratorError(f"Unable to run '{request.executable}': {exc}") from exc
        return completed.stdout


class HTTPGenerator:
    """Sends prompts to a local OpenAI-compatible ``/chat/completions`` endpoint."""

    DEFAULT_MODEL = "qwen2.5-coder:7b"
    DEFAULT_BASE_URL = "http://localhost:11434/v1"
    ENV_MODEL_KEYS = ("AUTOTEST_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("AUTOTEST_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("AUTOTEST_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        prompt_builder: PromptBuilder | None = None,
        request_timeout: Optional[float] = None,
        runner: Callable[[GeneratorRequest], str] | None = None,
    ) -> None:
        self.model = model or _first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        resolved_url = base_url or _first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        self.base_url = _ensure_local_url(resolved_url)
        self.api_key = api_key or _first_env_value(self.ENV_API_KEY_KEYS)
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.request_timeout = request_timeout
        self._runner = runner or self._http_runner

    def generate(self, path: str, text: str, context: GenerationContext) -> str:
        request = GeneratorRequest(
            prompt=self.prompt_builder.build(path, text, context),
            system=SYSTEM_PROMPT,
            executable=None,
            model=self.model,
            base_url=self.base_url,
            api_key=self.api_key,
            timeout=context.timeout or self.request_timeout or DEFAULT_TIMEOUT,
        )
        code = extract_code(self._runner(request))
        if not code:
            raise GeneratorError(f"model server returned an empty response for {path}")
        return code

    @staticmethod
    def _http_runner(request: GeneratorRequest) -> str:
        endpoint = f"{request.base_url}/chat/completions"
        messages = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        messages.append({"role": "user", "content": request.prompt})
        payload = {"model": request.model, "messages": messages, "temperature": 0.2}

        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"
        http_request = Request(
            endpoint,
            data=json.dumps(payload).encode("utf-8"),
            headers=headers,
            method="POST",
        )

        try:
            with urlopen(http_request, timeout=request.timeout or DEFAULT_TIMEOUT) as response:
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore")
            raise GeneratorError(
                f"model server failed with status {exc.code}: {detail.strip() or exc.reason}"
            ) from exc
        except URLError as exc:
            raise GeneratorError(f"model server request failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise GeneratorError(f"model server timed out after {request.timeout:.0f}s") from exc
        except OSError as exc:
            raise GeneratorError(f"model server connection failed: {exc}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise GeneratorError("model server returned invalid JSON") from exc
        return _extract_content(response_payload)


def _extract_content(payload: object) -> str:
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    text = first.get("text")
    return text if isinstance(text, str) else ""


def _first_env_value(keys: Sequence[str]) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


def _ensure_local_url(url: str) -> str:
    normalized = url.rstrip("/")
    host = urlparse(normalized).hostname
    if host is None or _is_local_host(host):
        return normalized
    raise GeneratorError(f"Remote base_url '{url}' is not permitted. Configure a local model server.")


def _is_local_host(host: str) -> bool:
    lowered = host.lower()
    if lowered in {"localhost", "127.0.0.1", "0.0.0.0", "::1"}:
        return True
    if lowered.endswith(".local") or lowered.endswith(".localdomain"):
        return True
    try:
        return ipaddress.ip_address(lowered).is_loopback
    except ValueError:
        return False


def build_generator(
    config: GeneratorConfig | None,
    *,
    provider: str | None = None,
) -> Optional[TestGenerator]:
    """Create the generator selected by ``provider`` (or the config); None means local only."""
    selected = (provider or (config.provider if config else None) or "none").lower()
    if selected == "none":
        return None
    settings = config or GeneratorConfig()
    if selected == "cli":
        return CLIGenerator(settings.executable, request_timeout=settings.request_timeout)
    if selected == "http":
        return HTTPGenerator(
            settings.model,
            base_url=settings.base_url,
            api_key=settings.api_key,
            request_timeout=settings.request_timeout,
        )
    raise GeneratorError(f"Unknown generator provider '{selected}'")


__all__ = [
    "CLIGenerator",
    "GenerationContext",
    "GeneratorRequest",
    "HTTPGenerator",
    "PromptBuilder",
    "TestGenerator",
    "build_generator",
    "extract_code",
]
