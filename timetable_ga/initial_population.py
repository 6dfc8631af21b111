# timetable_ga/initial_population.py
from typing import List

import numpy as np

from .model import Gene, Individual, ScheduleContext


def random_gene_for_meeting(subject: int, ctx: ScheduleContext, rng: np.random.Generator) -> Gene:
    lecturers = ctx.eligible_lecturers(subject)
    lecturer = lecturers[int(rng.integers(len(lecturers)))]
    hour = int(rng.integers(ctx.hours))
    return Gene(subject=subject, lecturer=lecturer, hour=hour)


def build_genome(ctx: ScheduleContext, rng: np.random.Generator) -> List[Gene]:
    # Sin evitar choques: la selección se encarga de resolverlos
    return [random_gene_for_meeting(m.subject, ctx, rng) for m in ctx.meetings]


def build_random_individual(ctx: ScheduleContext, rng: np.random.Generator) -> Individual:
    return Individual(genes=build_genome(ctx, rng))


def build_initial_population(
    ctx: ScheduleContext,
    pop_size: int,
    rng: np.random.Generator,
) -> List[Individual]:
    return [build_random_individual(ctx, rng) for _ in range(pop_size)]
