# timetable_ga/evaluation.py
import math
from concurrent.futures import Executor
from itertools import repeat
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .model import Gene, GroupId, Hour, Individual, LecturerId, ScheduleContext


def fitness_of(genes: Sequence[Gene], ctx: ScheduleContext) -> int:
    """
    Aptitud de un genoma: +1 por reunión sin choques, -1 si choca el grupo
    y también el docente, 0 en el caso mixto.

    El recorrido sigue el orden de las reuniones y consume el cupo de cada
    docente de forma voraz, así que las posiciones tempranas tienen prioridad.
    """
    fitness = 0
    used_group_hours: Set[Tuple[GroupId, Hour]] = set()
    used_lecturer_hours: Set[Tuple[LecturerId, Hour]] = set()
    free_lecturer_hours: Dict[LecturerId, int] = dict(ctx.problem.lecturer_requirements)

    for meeting, gene in zip(ctx.meetings, genes):
        key_group = (meeting.group, gene.hour)
        satisfies_group = key_group not in used_group_hours
        used_group_hours.add(key_group)

        key_lecturer = (gene.lecturer, gene.hour)
        satisfies_lecturer = True
        if free_lecturer_hours.get(gene.lecturer, 0) == 0:
            satisfies_lecturer = False
        if key_lecturer in used_lecturer_hours:
            satisfies_lecturer = False

        if satisfies_lecturer:
            free_lecturer_hours[gene.lecturer] -= 1
            used_lecturer_hours.add(key_lecturer)

        if satisfies_group and satisfies_lecturer:
            fitness += 1
        elif not satisfies_group and not satisfies_lecturer:
            fitness -= 1

    return fitness


def highest_possible_fitness(ctx: ScheduleContext) -> int:
    return len(ctx.meetings)


def lowest_possible_fitness(ctx: ScheduleContext) -> int:
    return -len(ctx.meetings)


def average_fitness(values: Sequence[int]) -> int:
    """Media redondeada al entero más cercano (mitades lejos de cero)."""
    if not values:
        raise ValueError("No se puede promediar una lista vacía de aptitudes")
    mean = sum(values) / len(values)
    return int(math.copysign(math.floor(abs(mean) + 0.5), mean))


def evaluate_population(
    population: List[Individual],
    ctx: ScheduleContext,
    executor: Optional[Executor] = None,
) -> List[int]:
    pending = [ind for ind in population if ind.fitness is None]
    if pending:
        genomes = [ind.genes for ind in pending]
        if executor is None:
            scores = [fitness_of(g, ctx) for g in genomes]
        else:
            chunk = max(1, len(genomes) // 32)
            scores = list(executor.map(fitness_of, genomes, repeat(ctx), chunksize=chunk))
        for ind, score in zip(pending, scores):
            ind.fitness = score
    return [ind.fitness for ind in population]
