"""
Configuración del algoritmo genético.

Los parámetros se cargan desde YAML para que cada corrida sea reproducible;
si el archivo no existe se usan los valores por defecto.
"""
import math
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .model import HOURS

CROSSOVER_NAMES = ("uniform", "single_point", "multi_point")

INT_FIELDS = ("hours", "population_size", "generations", "num_parents", "crossover_points", "workers")
FLOAT_FIELDS = ("selection_ratio", "mutation_rate", "replace_ratio")


def _is_int(value: Any) -> bool:
    # bool es subclase de int; no lo aceptamos como cantidad
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class GAConfig:
    # Tiempo
    hours: int = HOURS

    # Algoritmo genético
    population_size: int = 200
    generations: int = 100
    selection_ratio: float = 0.85
    num_parents: int = 20
    crossover: str = "uniform"
    crossover_points: int = 3      # solo para multi_point
    mutation_rate: float = 0.2
    replace_ratio: float = 0.85
    offspring_has_precedence: bool = False
    seed: Optional[int] = 42

    # Evaluación paralela (1 = secuencial)
    workers: int = 1

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GAConfig":
        merged = asdict(cls())
        for k, v in data.items():
            if k in merged:
                merged[k] = v
        return cls(**merged)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        for name in INT_FIELDS:
            value = getattr(self, name)
            if not _is_int(value):
                raise ValueError(f"{name} debe ser entero, se recibió {value!r}")
        for name in FLOAT_FIELDS:
            value = getattr(self, name)
            if not (_is_int(value) or isinstance(value, float)):
                raise ValueError(f"{name} debe ser numérico, se recibió {value!r}")
        if not isinstance(self.offspring_has_precedence, bool):
            raise ValueError(
                f"offspring_has_precedence debe ser booleano, se recibió {self.offspring_has_precedence!r}"
            )
        if self.seed is not None and not _is_int(self.seed):
            raise ValueError(f"seed debe ser entero o null, se recibió {self.seed!r}")

        if self.hours < 1:
            raise ValueError(f"hours debe ser >= 1, se recibió {self.hours}")
        if self.population_size < 2:
            raise ValueError(f"population_size debe ser >= 2, se recibió {self.population_size}")
        if self.generations < 1:
            raise ValueError(f"generations debe ser >= 1, se recibió {self.generations}")
        if self.num_parents < 1:
            raise ValueError(f"num_parents debe ser >= 1, se recibió {self.num_parents}")
        if self.crossover_points < 1:
            raise ValueError(f"crossover_points debe ser >= 1, se recibió {self.crossover_points}")
        if self.workers < 1:
            raise ValueError(f"workers debe ser >= 1, se recibió {self.workers}")
        for name in ("selection_ratio", "replace_ratio"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} debe estar en (0, 1], se recibió {value}")
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ValueError(f"mutation_rate debe estar en [0, 1], se recibió {self.mutation_rate}")
        if self.crossover not in CROSSOVER_NAMES:
            raise ValueError(
                f"crossover debe ser uno de {', '.join(CROSSOVER_NAMES)}, se recibió '{self.crossover}'"
            )
        # el reemplazo elitista debe dejar lugar para al menos un hijo
        if math.floor(self.population_size * self.replace_ratio + 0.5) < 1:
            raise ValueError(
                f"replace_ratio={self.replace_ratio} no deja hijos con "
                f"population_size={self.population_size}"
            )


def load_config(path: str = "config.yaml") -> GAConfig:
    cfg_path = Path(path)
    if not cfg_path.exists():
        return GAConfig()
    try:
        data = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"No se pudo leer la configuración {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{path} debe contener un objeto mapeo")
    return GAConfig.from_dict(data)
