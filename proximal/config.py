"""
Proximal Config — конфигурация компаратора и её загрузка из YAML

Модуль описывает:
- ProximalConfig: допуск N и набор точностей с битовой специализацией
- parse_config: проверку словаря настроек (например, секции YAML)
- load_config: чтение YAML-файла с настройками на верхнем уровне или
  в секции ``proximal``

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. tolerance — строго int >= 0: bool, float и строки не приводятся
2. Неизвестные ключи запрещены (extra="forbid")
3. Любая ошибка чтения, разбора или проверки файла → ValueError
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Final

import yaml
from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError, field_validator

from proximal.core.domain.formats import Precision
from proximal.core.domain.representation import DEFAULT_SPECIALIZATIONS

logger = logging.getLogger(__name__)

# Допуск по умолчанию: разница до 2^1 = 2 ULP
DEFAULT_TOLERANCE: Final[int] = 1


class ProximalConfig(BaseModel):
    """
    Конфигурация компаратора.

    tolerance — допуск N (разница до 2^N ULP большего операнда).
    specializations — точности, для которых используется битовая
    специализация; остальные обслуживаются generic-путём.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    tolerance: StrictInt = Field(DEFAULT_TOLERANCE, ge=0)
    specializations: frozenset[Precision] = Field(default=DEFAULT_SPECIALIZATIONS)

    @field_validator("specializations")
    @classmethod
    def _validate_specializations(cls, value: frozenset[Precision]) -> frozenset[Precision]:
        if Precision.GENERIC in value:
            raise ValueError("generic precision has no bitwise specialization")
        return value


def _format_validation_error(error: ValidationError) -> str:
    lines = ["Configuration validation failed:"]
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        message = issue.get("msg", "Invalid value")
        lines.append(f"- {location}: {message}")
    return "\n".join(lines)


def parse_config(data: dict[str, Any] | None) -> ProximalConfig:
    """
    Проверка словаря настроек.

    Raises:
        ValueError: Если настройки не проходят проверку (по строке на поле)
    """
    try:
        return ProximalConfig.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(_format_validation_error(exc)) from exc


def load_config(path: str | Path) -> ProximalConfig:
    """
    Загрузка конфигурации компаратора из YAML-файла.

    Настройки могут лежать на верхнем уровне файла или в секции
    ``proximal`` общей конфигурации тестового набора.

    Args:
        path: Путь к YAML-файлу

    Returns:
        ProximalConfig

    Raises:
        ValueError: Если файл не читается, не является корректным YAML,
            не содержит словаря или не проходит проверку
    """
    config_path = Path(path)
    logger.debug("Loading comparator configuration from %s", config_path)

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Unable to read config file '{config_path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in config file '{config_path}': {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {config_path}")
    if "proximal" in data:
        data = data["proximal"]

    config = parse_config(data)
    logger.info(
        "Loaded comparator configuration: tolerance=%d, specializations=%s",
        config.tolerance,
        sorted(p.value for p in config.specializations),
    )
    return config
