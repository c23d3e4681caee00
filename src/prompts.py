from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path

import yaml

from errors import PromptLoadError


logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


@dataclass(frozen=True, slots=True)
class Prompt:
    name: str
    user: str
    system: str | None = None

    @property
    def text(self) -> str:
        if not self.system:
            return self.user
        return f"{self.system}\n\n{self.user}"


def _coerce_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _validate_prompt(prompt: Prompt, source: Path) -> Prompt:
    if not prompt.user.strip():
        raise PromptLoadError(f"invalid prompt in {source}: user prompt cannot be empty")
    return prompt


def load_prompt_file(path: Path) -> Prompt:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise PromptLoadError(f"failed to parse YAML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise PromptLoadError(f"failed to read prompt file {path}: {exc}") from exc

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise PromptLoadError(f"invalid prompt in {path}: expected a mapping")

    prompt = Prompt(
        name=path.stem,
        user=str(payload.get("user") or ""),
        system=_coerce_text(payload.get("system")),
    )
    return _validate_prompt(prompt, path)


def load_prompt_dir(directory: Path) -> list[Prompt]:
    # Only top-level YAML files; subdirectories and other files are skipped.
    prompts: list[Prompt] = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix.lower() not in YAML_SUFFIXES:
            logger.debug("Skipping non-prompt entry %s", path)
            continue
        prompts.append(load_prompt_file(path))
    return prompts


def _load_line_prompts(path: Path) -> list[Prompt]:
    lines = path.read_text(encoding="utf-8").splitlines()
    prompts: list[Prompt] = []
    if path.suffix.lower() == ".jsonl":
        for line_number, raw_line in enumerate(lines, start=1):
            line = raw_line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as exc:
                raise PromptLoadError(
                    f"Invalid JSONL at line {line_number}: {exc.msg}"
                ) from exc
            if not isinstance(payload, dict):
                raise PromptLoadError(
                    f"Invalid JSONL at line {line_number}: each row must be an object "
                    "with `prompt`, `content` or `user`"
                )

            user = payload.get("user")
            if user is None:
                user = payload.get("prompt")
            if user is None:
                user = payload.get("content")
            value = _coerce_text(user)
            if value is None:
                continue
            prompts.append(
                Prompt(
                    name=str(payload.get("name") or f"{path.stem}-{line_number}"),
                    user=value.strip(),
                    system=_coerce_text(payload.get("system")),
                )
            )
        return prompts

    for line_number, line in enumerate(lines, start=1):
        value = line.strip()
        if value:
            prompts.append(Prompt(name=f"{path.stem}-{line_number}", user=value))
    return prompts


def load_prompts(path: Path) -> list[Prompt]:
    """Load prompts from a YAML directory, a YAML file, or a .txt/.jsonl file."""
    if not path.exists():
        raise PromptLoadError(f"prompt source not found: {path}")

    if path.is_dir():
        prompts = load_prompt_dir(path)
    elif path.suffix.lower() in YAML_SUFFIXES:
        prompts = [load_prompt_file(path)]
    else:
        try:
            prompts = _load_line_prompts(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise PromptLoadError(f"failed to read prompt file {path}: {exc}") from exc

    logger.debug("Loaded %d prompt(s) from %s", len(prompts), path)
    return prompts
