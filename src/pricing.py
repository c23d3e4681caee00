from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

import yaml

from errors import ConfigurationError


logger = logging.getLogger(__name__)

TOKENS_PER_UNIT = 1_000_000


@dataclass(frozen=True, slots=True)
class ModelPricing:
    """Prices in currency per million tokens."""

    input: float = 0.0
    output: float = 0.0

    def calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        input_cost = (input_tokens / TOKENS_PER_UNIT) * self.input
        output_cost = (output_tokens / TOKENS_PER_UNIT) * self.output
        return input_cost + output_cost


def calculate_cost(
    input_tokens: int, output_tokens: int, pricing: ModelPricing | None
) -> float:
    if pricing is None:
        return 0.0
    return pricing.calculate_cost(input_tokens, output_tokens)


@dataclass(frozen=True, slots=True)
class ModelSpec:
    token_price: ModelPricing = field(default_factory=ModelPricing)
    parameters: dict[str, Any] = field(default_factory=dict)
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None


@dataclass(frozen=True, slots=True)
class ModelTarget:
    provider: str
    model: str
    spec: ModelSpec


def _coerce_price(provider: str, model: str, key: str, value: object) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigurationError(
            f"{provider}.{model}.token_price.{key}",
            f"expected a number, got {value!r}",
        )
    return float(value)


def _coerce_optional_number(
    provider: str, model: str, key: str, value: object, kind: type
) -> Any:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigurationError(
            f"{provider}.{model}.{key}", f"expected a number, got {value!r}"
        )
    return kind(value)


def _parse_model_spec(provider: str, model: str, data: object) -> ModelSpec:
    if data is None:
        return ModelSpec()
    if not isinstance(data, dict):
        raise ConfigurationError(f"{provider}.{model}", "model entry must be a mapping")

    price_raw = data.get("token_price") or {}
    if not isinstance(price_raw, dict):
        raise ConfigurationError(
            f"{provider}.{model}.token_price", "token_price must be a mapping"
        )
    parameters = data.get("parameters") or {}
    if not isinstance(parameters, dict):
        raise ConfigurationError(
            f"{provider}.{model}.parameters", "parameters must be a mapping"
        )

    return ModelSpec(
        token_price=ModelPricing(
            input=_coerce_price(provider, model, "input", price_raw.get("input")),
            output=_coerce_price(provider, model, "output", price_raw.get("output")),
        ),
        parameters=dict(parameters),
        max_tokens=_coerce_optional_number(
            provider, model, "max_tokens", data.get("max_tokens"), int
        ),
        temperature=_coerce_optional_number(
            provider, model, "temperature", data.get("temperature"), float
        ),
        top_p=_coerce_optional_number(provider, model, "top_p", data.get("top_p"), float),
    )


@dataclass(slots=True)
class ModelsConfig:
    """Pricing and request parameters keyed by provider name, then model name."""

    providers: dict[str, dict[str, ModelSpec]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: object) -> "ModelsConfig":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError("models", "top-level document must be a mapping")

        providers: dict[str, dict[str, ModelSpec]] = {}
        for provider_name, models_raw in data.items():
            provider = str(provider_name)
            if models_raw is None:
                providers[provider] = {}
                continue
            if not isinstance(models_raw, dict):
                raise ConfigurationError(provider, "provider entry must be a mapping")
            providers[provider] = {
                str(model_name): _parse_model_spec(provider, str(model_name), spec)
                for model_name, spec in models_raw.items()
            }
        return cls(providers=providers)

    def get_model_spec(self, provider: str, model: str) -> ModelSpec | None:
        return self.providers.get(provider, {}).get(model)

    def get_model_pricing(self, provider: str, model: str) -> ModelPricing | None:
        spec = self.get_model_spec(provider, model)
        return spec.token_price if spec is not None else None

    def get_model_parameters(self, provider: str, model: str) -> dict[str, Any]:
        spec = self.get_model_spec(provider, model)
        return dict(spec.parameters) if spec is not None else {}

    def list_models(self, provider: str) -> list[str]:
        return list(self.providers.get(provider, {}))

    def provider_names(self) -> list[str]:
        return list(self.providers)

    def targets(self, provider_names: list[str] | None = None) -> list[ModelTarget]:
        selected = self.provider_names() if provider_names is None else provider_names
        targets: list[ModelTarget] = []
        for provider in selected:
            for model, spec in self.providers.get(provider, {}).items():
                targets.append(ModelTarget(provider=provider, model=model, spec=spec))
        return targets


def load_models_config(path: Path) -> ModelsConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(
            str(path), f"failed to read models config file: {exc}"
        ) from exc

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            str(path), f"failed to parse models config YAML: {exc}"
        ) from exc

    config = ModelsConfig.from_dict(raw)
    logger.debug(
        "Loaded pricing for %d model(s) across %d provider(s) from %s",
        sum(len(models) for models in config.providers.values()),
        len(config.providers),
        path,
    )
    return config
