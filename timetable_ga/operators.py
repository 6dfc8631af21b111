# timetable_ga/operators.py
import math
from abc import ABC, abstractmethod
from typing import Dict, List, Sequence, Tuple, Type

import numpy as np

from .initial_population import random_gene_for_meeting
from .model import Gene, Individual, ScheduleContext


def _fitness_key(ind: Individual) -> int:
    return ind.fitness


def _require_evaluated(population: Sequence[Individual], what: str) -> None:
    if any(ind.fitness is None for ind in population):
        raise ValueError(f"{what}: todos los individuos deben estar evaluados")


def _check_ratio(name: str, value: float) -> None:
    if not 0.0 < value <= 1.0:
        raise ValueError(f"{name} debe estar en (0, 1], se recibió {value}")


# --------------------------------------------------------------------------
# Selección
# --------------------------------------------------------------------------

class MaximizeSelector:
    """
    Selección por truncamiento maximizando la aptitud.

    Se ordena la población de mayor a menor aptitud, se descarta lo que queda
    por debajo de ``ceil(selection_ratio * N)`` y se sortean ``num_parents``
    padres con reemplazo, con pesos lineales según el puesto.
    """

    def __init__(self, selection_ratio: float = 0.85, num_parents: int = 20):
        _check_ratio("selection_ratio", selection_ratio)
        if num_parents < 1:
            raise ValueError(f"num_parents debe ser >= 1, se recibió {num_parents}")
        self.selection_ratio = selection_ratio
        self.num_parents = num_parents

    def pool_size(self, population_size: int) -> int:
        return max(1, math.ceil(round(self.selection_ratio * population_size, 9)))

    def select(self, population: Sequence[Individual], rng: np.random.Generator) -> List[Individual]:
        if not population:
            raise ValueError("No se puede seleccionar de una población vacía")
        _require_evaluated(population, "Selección")

        # sorted es estable: los empates conservan el orden de la población
        ranked = sorted(population, key=_fitness_key, reverse=True)
        pool = ranked[: self.pool_size(len(population))]

        weights = np.arange(len(pool), 0, -1, dtype=float)
        weights /= weights.sum()
        count = min(self.num_parents, len(pool))
        picks = rng.choice(len(pool), size=count, replace=True, p=weights)
        return [pool[int(i)] for i in picks]


# --------------------------------------------------------------------------
# Cruce
# --------------------------------------------------------------------------

def _check_lengths(parent_a: Sequence[Gene], parent_b: Sequence[Gene]) -> int:
    if len(parent_a) != len(parent_b):
        raise ValueError(
            f"Los padres deben tener el mismo largo ({len(parent_a)} != {len(parent_b)})"
        )
    return len(parent_a)


class CrossoverStrategy(ABC):
    name = ""

    @abstractmethod
    def recombine(
        self,
        parent_a: Sequence[Gene],
        parent_b: Sequence[Gene],
        rng: np.random.Generator,
    ) -> Tuple[List[Gene], List[Gene]]:
        raise NotImplementedError

    def breed(self, parents: Sequence[Individual], rng: np.random.Generator) -> List[Individual]:
        """Cruza los padres de a pares consecutivos; dos hijos por pareja."""
        children: List[Individual] = []
        n = len(parents)
        for i in range(0, n, 2):
            # si la cantidad es impar, el último se cruza con el primero
            p1, p2 = parents[i], parents[(i + 1) % n]
            c1, c2 = self.recombine(p1.genes, p2.genes, rng)
            children.append(Individual(genes=c1))
            children.append(Individual(genes=c2))
        return children

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class UniformCrossover(CrossoverStrategy):
    name = "uniform"

    def recombine(self, parent_a, parent_b, rng):
        n = _check_lengths(parent_a, parent_b)
        take_a = rng.random(n) < 0.5
        c1 = [ga if t else gb for ga, gb, t in zip(parent_a, parent_b, take_a)]
        c2 = [gb if t else ga for ga, gb, t in zip(parent_a, parent_b, take_a)]
        return c1, c2


class SinglePointCrossover(CrossoverStrategy):
    name = "single_point"

    def recombine(self, parent_a, parent_b, rng):
        n = _check_lengths(parent_a, parent_b)
        if n < 2:
            return list(parent_a), list(parent_b)
        cut = int(rng.integers(1, n))
        c1 = list(parent_a[:cut]) + list(parent_b[cut:])
        c2 = list(parent_b[:cut]) + list(parent_a[cut:])
        return c1, c2


class MultiPointCrossover(CrossoverStrategy):
    name = "multi_point"

    def __init__(self, points: int = 3):
        if points < 1:
            raise ValueError(f"points debe ser >= 1, se recibió {points}")
        self.points = points

    def cut_points(self, n: int, rng: np.random.Generator) -> List[int]:
        k = min(self.points, n - 1)
        if k <= 0:
            return []
        cuts = rng.choice(np.arange(1, n), size=k, replace=False)
        return sorted(int(c) for c in cuts)

    def recombine(self, parent_a, parent_b, rng):
        n = _check_lengths(parent_a, parent_b)
        bounds = [0] + self.cut_points(n, rng) + [n]
        c1: List[Gene] = []
        c2: List[Gene] = []
        src1, src2 = parent_a, parent_b
        for start, end in zip(bounds, bounds[1:]):
            c1.extend(src1[start:end])
            c2.extend(src2[start:end])
            src1, src2 = src2, src1
        return c1, c2

    def __repr__(self) -> str:
        return f"MultiPointCrossover(points={self.points})"


CROSSOVERS: Dict[str, Type[CrossoverStrategy]] = {
    UniformCrossover.name: UniformCrossover,
    SinglePointCrossover.name: SinglePointCrossover,
    MultiPointCrossover.name: MultiPointCrossover,
}


def make_crossover(name: str, points: int = 3) -> CrossoverStrategy:
    if name not in CROSSOVERS:
        raise ValueError(f"Cruce desconocido '{name}'. Opciones: {', '.join(CROSSOVERS)}")
    if name == MultiPointCrossover.name:
        return MultiPointCrossover(points)
    return CROSSOVERS[name]()


# --------------------------------------------------------------------------
# Mutación
# --------------------------------------------------------------------------

def mutate_gene(gene: Gene, ctx: ScheduleContext, rng: np.random.Generator) -> Gene:
    """Nueva hora y nuevo docente apto; la materia nunca cambia."""
    return random_gene_for_meeting(gene.subject, ctx, rng)


def mutate_genome(
    genes: Sequence[Gene],
    ctx: ScheduleContext,
    mutation_rate: float,
    rng: np.random.Generator,
) -> List[Gene]:
    triggers = rng.random(len(genes)) < mutation_rate
    return [mutate_gene(g, ctx, rng) if hit else g for g, hit in zip(genes, triggers)]


# --------------------------------------------------------------------------
# Reinserción
# --------------------------------------------------------------------------

class ElitistReinserter:
    """
    Forma la siguiente generación con tamaño fijo.

    Los primeros ``round(N * replace_ratio)`` puestos salen de los hijos. Sin
    precedencia de los hijos, la élite de la generación anterior compite por
    esos mismos puestos (mezcla de las dos listas ordenadas). El resto se
    completa con los mejores padres que no entraron.
    """

    def __init__(self, replace_ratio: float = 0.85, offspring_has_precedence: bool = False):
        _check_ratio("replace_ratio", replace_ratio)
        self.replace_ratio = replace_ratio
        self.offspring_has_precedence = offspring_has_precedence

    def num_offspring(self, population_size: int) -> int:
        return min(population_size, int(math.floor(population_size * self.replace_ratio + 0.5)))

    def combine(
        self,
        offspring: Sequence[Individual],
        population: Sequence[Individual],
    ) -> List[Individual]:
        _require_evaluated(offspring, "Reinserción (hijos)")
        _require_evaluated(population, "Reinserción (población)")

        size = len(population)
        old = sorted(population, key=_fitness_key, reverse=True)
        new = sorted(offspring, key=_fitness_key, reverse=True)
        target = self.num_offspring(size)

        result: List[Individual] = []
        oi = ni = 0
        if self.offspring_has_precedence:
            while len(result) < target and ni < len(new):
                result.append(new[ni])
                ni += 1
        else:
            while len(result) < target and ni < len(new):
                if oi < len(old) and old[oi].fitness > new[ni].fitness:
                    result.append(old[oi])
                    oi += 1
                else:
                    result.append(new[ni])
                    ni += 1

        while len(result) < size:
            result.append(old[oi])
            oi += 1
        return result
