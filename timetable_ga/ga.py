import logging
import time
from concurrent.futures import Executor, ProcessPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from .config import GAConfig
from .evaluation import average_fitness, evaluate_population, highest_possible_fitness
from .initial_population import build_initial_population
from .model import Individual, ScheduleContext
from .operators import (
    CrossoverStrategy,
    ElitistReinserter,
    MaximizeSelector,
    make_crossover,
    mutate_genome,
)

logger = logging.getLogger(__name__)


class SimulationError(RuntimeError):
    """Fallo interno del ciclo evolutivo; no es recuperable."""


class Stage(Enum):
    INITIAL = "initial"
    EVALUATED = "evaluated"
    SELECTED = "selected"
    RECOMBINED = "recombined"
    MUTATED = "mutated"
    REEVALUATED = "reevaluated"
    REINSERTED = "reinserted"


class StopReason(Enum):
    GENERATION_LIMIT = "generation limit reached"
    PERFECT_SCHEDULE = "perfect schedule found"


@dataclass(frozen=True)
class GenerationStats:
    generation: int
    average_fitness: int
    best_fitness: int
    duration: float
    processing_time: float

    def as_dict(self) -> Dict:
        return {
            "gen": self.generation,
            "avg_fitness": self.average_fitness,
            "best_fitness": self.best_fitness,
            "duration": self.duration,
            "processing_time": self.processing_time,
        }


@dataclass
class SimulationResult:
    best: Individual
    best_fitness: int
    generation_found: int
    generations: int
    duration: float
    processing_time: float
    stop_reason: StopReason
    history: List[Dict] = field(default_factory=list)


class GeneticSolver:
    """
    Ciclo generacional: evaluar, seleccionar, cruzar, mutar, reevaluar y
    reinsertar, hasta agotar las generaciones o encontrar un horario perfecto.
    """

    def __init__(
        self,
        ctx: ScheduleContext,
        cfg: GAConfig,
        rng: Optional[np.random.Generator] = None,
        crossover: Optional[CrossoverStrategy] = None,
        on_generation: Optional[Callable[[GenerationStats], None]] = None,
    ):
        self.ctx = ctx
        self.cfg = cfg
        self.rng = rng if rng is not None else np.random.default_rng(cfg.seed)
        self.selector = MaximizeSelector(cfg.selection_ratio, cfg.num_parents)
        self.crossover = crossover or make_crossover(cfg.crossover, cfg.crossover_points)
        self.reinserter = ElitistReinserter(cfg.replace_ratio, cfg.offspring_has_precedence)
        self.on_generation = on_generation
        self.highest_fitness = highest_possible_fitness(ctx)

        self.population: List[Individual] = []
        self.best: Optional[Individual] = None
        self.generation = 0
        self.stage = Stage.INITIAL
        self.history: List[Dict] = []
        self.processing_time = 0.0
        self._started = 0.0
        self._executor: Optional[Executor] = None

    # ------------------------------------------------------------------
    def initialize(self, population: Optional[Sequence[Individual]] = None) -> None:
        if population is None:
            logger.info(
                "Inicializando población: %d individuos, %d reuniones, %d horas",
                self.cfg.population_size, len(self.ctx.meetings), self.ctx.hours,
            )
            population = build_initial_population(self.ctx, self.cfg.population_size, self.rng)

        self.population = list(population)
        self.best = None
        self.generation = 0
        self.history = []
        self.processing_time = 0.0
        self._started = time.perf_counter()

        self._check_population(self.population)
        self._evaluate(self.population)
        self.stage = Stage.EVALUATED
        self._track_best(self.population)

    def step(self) -> Optional[SimulationResult]:
        """Ejecuta una generación; devuelve el resultado final si el ciclo terminó."""
        if self.stage is Stage.INITIAL:
            raise SimulationError("La población no fue inicializada (llamar a initialize())")

        t0 = time.perf_counter()
        self.generation += 1

        fitness_values = self._evaluate(self.population)
        self.stage = Stage.EVALUATED
        self._track_best(self.population)
        avg = average_fitness(fitness_values)

        target = self.reinserter.num_offspring(len(self.population))
        batches = self._select_parents(target)
        self.stage = Stage.SELECTED

        offspring = [
            child for parents in batches for child in self.crossover.breed(parents, self.rng)
        ][:target]
        self.stage = Stage.RECOMBINED

        for child in offspring:
            child.genes = mutate_genome(child.genes, self.ctx, self.cfg.mutation_rate, self.rng)
            child.generation = self.generation
        self.stage = Stage.MUTATED
        self._check_genomes(offspring)

        self._evaluate(offspring)
        self.stage = Stage.REEVALUATED
        self._track_best(offspring)

        self.population = self.reinserter.combine(offspring, self.population)
        self.stage = Stage.REINSERTED
        self._check_population(self.population)

        duration = time.perf_counter() - t0
        self.processing_time += duration
        stats = GenerationStats(
            generation=self.generation,
            average_fitness=avg,
            best_fitness=self.best.fitness,
            duration=duration,
            processing_time=self.processing_time,
        )
        self.history.append(stats.as_dict())
        logger.info(
            "Gen %d: aptitud promedio=%d mejor=%d duración=%.4fs proceso=%.4fs",
            stats.generation, stats.average_fitness, stats.best_fitness,
            stats.duration, stats.processing_time,
        )
        if self.on_generation is not None:
            self.on_generation(stats)

        reason = self._stop_reason()
        if reason is None:
            return None
        return self._finish(reason)

    def evolve(self, population: Optional[Sequence[Individual]] = None) -> SimulationResult:
        if self.cfg.workers > 1:
            with ProcessPoolExecutor(max_workers=self.cfg.workers) as executor:
                self._executor = executor
                try:
                    return self._run(population)
                finally:
                    self._executor = None
        return self._run(population)

    # ------------------------------------------------------------------
    def _run(self, population: Optional[Sequence[Individual]]) -> SimulationResult:
        self.initialize(population)
        while True:
            result = self.step()
            if result is not None:
                return result

    def _evaluate(self, individuals: List[Individual]) -> List[int]:
        return evaluate_population(individuals, self.ctx, self._executor)

    def _track_best(self, individuals: Sequence[Individual]) -> None:
        if not individuals:
            return
        candidate = max(individuals, key=lambda ind: ind.fitness)
        if self.best is None or candidate.fitness > self.best.fitness:
            self.best = Individual(
                genes=list(candidate.genes),
                fitness=candidate.fitness,
                generation=self.generation,
            )
            logger.debug("Nuevo mejor individuo: aptitud=%d gen=%d", candidate.fitness, self.generation)

    def _select_parents(self, target: int) -> List[List[Individual]]:
        batches: List[List[Individual]] = []
        expected = 0
        while expected < target:
            parents = self.selector.select(self.population, self.rng)
            batches.append(parents)
            # breed produce dos hijos por pareja, contando la pareja cíclica
            expected += 2 * ((len(parents) + 1) // 2)
        return batches

    def _check_genomes(self, individuals: Sequence[Individual]) -> None:
        expected = len(self.ctx.meetings)
        for ind in individuals:
            if len(ind.genes) != expected:
                raise SimulationError(
                    f"Genoma de largo {len(ind.genes)} en la generación {self.generation}; "
                    f"se esperaban {expected} genes"
                )

    def _check_population(self, population: Sequence[Individual]) -> None:
        if len(population) != self.cfg.population_size:
            raise SimulationError(
                f"La población tiene {len(population)} individuos en la generación "
                f"{self.generation}; se esperaban {self.cfg.population_size}"
            )
        self._check_genomes(population)

    def _stop_reason(self) -> Optional[StopReason]:
        if self.best.fitness == self.highest_fitness:
            return StopReason.PERFECT_SCHEDULE
        if self.generation >= self.cfg.generations:
            return StopReason.GENERATION_LIMIT
        return None

    def _finish(self, reason: StopReason) -> SimulationResult:
        duration = time.perf_counter() - self._started
        logger.info(reason.value)
        logger.info(
            "Resultado final tras %.2fs: generación %d, mejor aptitud %d encontrada en la "
            "generación %d, tiempo de proceso %.2fs",
            duration, self.generation, self.best.fitness, self.best.generation,
            self.processing_time,
        )
        return SimulationResult(
            best=self.best,
            best_fitness=self.best.fitness,
            generation_found=self.best.generation,
            generations=self.generation,
            duration=duration,
            processing_time=self.processing_time,
            stop_reason=reason,
            history=list(self.history),
        )
