import math
import unittest

import numpy as np

from timetable_ga.data_loader import small_example
from timetable_ga.evaluation import (
    average_fitness,
    fitness_of,
    highest_possible_fitness,
    lowest_possible_fitness,
)
from timetable_ga.initial_population import build_genome, build_initial_population
from timetable_ga.model import Gene, Individual, Meeting, Problem, ProblemError, ScheduleContext, build_meetings
from timetable_ga.operators import (
    CrossoverStrategy,
    ElitistReinserter,
    MaximizeSelector,
    MultiPointCrossover,
    SinglePointCrossover,
    UniformCrossover,
    make_crossover,
    mutate_gene,
    mutate_genome,
)


def make_ctx(groups, lecturers, subjects, hours=20):
    return ScheduleContext.from_problem(Problem(groups, lecturers, subjects), hours=hours)


def with_fitness(values):
    return [Individual(genes=[], fitness=v) for v in values]


class StructureAssertions:
    def assertValidGenome(self, genes, ctx):
        self.assertEqual(len(genes), len(ctx.meetings))
        for meeting, gene in zip(ctx.meetings, genes):
            self.assertEqual(gene.subject, meeting.subject)
            self.assertIn(gene.lecturer, ctx.problem.subject_requirements[meeting.subject])
            self.assertTrue(0 <= gene.hour < ctx.hours)


class MeetingTests(unittest.TestCase):
    def test_meetings_follow_group_then_declared_subject_order(self):
        meetings = build_meetings(small_example())
        self.assertEqual(len(meetings), 30)
        self.assertEqual(meetings[:3], (Meeting(0, 0), Meeting(0, 0), Meeting(0, 1)))
        self.assertEqual(meetings[10], Meeting(1, 0))
        self.assertEqual(meetings[11], Meeting(1, 3))
        self.assertEqual(meetings[-1], Meeting(2, 3))

    def test_context_rejects_inconsistent_problem(self):
        with self.assertRaises(ProblemError):
            make_ctx({0: [(7, 1)]}, {0: 1}, {0: [0]})
        with self.assertRaises(ProblemError):
            make_ctx({0: [(0, 1)]}, {0: 1}, {0: [3]})
        with self.assertRaises(ProblemError):
            make_ctx({0: [(0, 0)]}, {0: 1}, {0: [0]})


class EvaluationTests(unittest.TestCase):
    def setUp(self):
        # reuniones: (0,0), (0,0), (1,1)
        self.ctx = make_ctx({0: [(0, 2)], 1: [(1, 1)]}, {0: 2, 1: 1}, {0: [0], 1: [1]})

    def test_conflict_free_genome_scores_number_of_meetings(self):
        genes = [Gene(0, 0, 0), Gene(0, 0, 1), Gene(1, 1, 0)]
        self.assertEqual(fitness_of(genes, self.ctx), 3)
        self.assertEqual(highest_possible_fitness(self.ctx), 3)
        self.assertEqual(lowest_possible_fitness(self.ctx), -3)

    def test_double_conflict_scores_minus_one(self):
        genes = [Gene(0, 0, 0), Gene(0, 0, 0), Gene(1, 1, 0)]
        self.assertEqual(fitness_of(genes, self.ctx), 1 - 1 + 1)

    def test_mixed_case_scores_zero(self):
        # grupo libre pero el docente ya agotó su cupo
        ctx = make_ctx({0: [(0, 1)], 1: [(0, 1)]}, {0: 1}, {0: [0]})
        self.assertEqual(fitness_of([Gene(0, 0, 0), Gene(0, 0, 1)], ctx), 1)
        # grupo libre pero el docente ya dicta a esa hora
        ctx = make_ctx({0: [(0, 1)], 1: [(0, 1)]}, {0: 5}, {0: [0]})
        self.assertEqual(fitness_of([Gene(0, 0, 3), Gene(0, 0, 3)], ctx), 1)

    def test_quota_is_consumed_greedily_in_meeting_order(self):
        ctx = make_ctx({0: [(0, 3)]}, {0: 2}, {0: [0]})
        # la segunda reunión choca y no consume cupo, la tercera aún lo tiene
        self.assertEqual(fitness_of([Gene(0, 0, 0), Gene(0, 0, 0), Gene(0, 0, 1)], ctx), 1 - 1 + 1)
        # con otro orden de horas el cupo se agota antes
        self.assertEqual(fitness_of([Gene(0, 0, 0), Gene(0, 0, 1), Gene(0, 0, 1)], ctx), 1 + 1 - 1)
        self.assertEqual(fitness_of([Gene(0, 0, 0), Gene(0, 0, 1), Gene(0, 0, 2)], ctx), 1 + 1 + 0)

    def test_fully_colliding_genome_reaches_the_scan_minimum(self):
        # la primera reunión de cada (grupo, hora) nunca choca por grupo
        ctx = make_ctx({0: [(0, 4)]}, {0: 0}, {0: [0]})
        score = fitness_of([Gene(0, 0, 0)] * 4, ctx)
        self.assertEqual(score, -3)
        self.assertGreaterEqual(score, lowest_possible_fitness(ctx))

    def test_fitness_within_bounds_for_random_genomes(self):
        ctx = ScheduleContext.from_problem(small_example())
        rng = np.random.default_rng(7)
        for _ in range(50):
            score = fitness_of(build_genome(ctx, rng), ctx)
            self.assertTrue(-30 <= score <= 30)

    def test_evaluation_does_not_mutate_problem(self):
        before = dict(self.ctx.problem.lecturer_requirements)
        fitness_of([Gene(0, 0, 0), Gene(0, 0, 1), Gene(1, 1, 0)], self.ctx)
        self.assertEqual(self.ctx.problem.lecturer_requirements, before)

    def test_average_rounds_to_nearest(self):
        self.assertEqual(average_fitness([1, 2]), 2)
        self.assertEqual(average_fitness([-1, -2]), -2)
        self.assertEqual(average_fitness([1, 2, 2]), 2)
        self.assertEqual(average_fitness([0, 0, 1]), 0)
        with self.assertRaises(ValueError):
            average_fitness([])


class InitialPopulationTests(StructureAssertions, unittest.TestCase):
    def test_population_genomes_are_structurally_valid(self):
        ctx = ScheduleContext.from_problem(small_example())
        population = build_initial_population(ctx, 25, np.random.default_rng(3))
        self.assertEqual(len(population), 25)
        for ind in population:
            self.assertIsNone(ind.fitness)
            self.assertValidGenome(ind.genes, ctx)

    def test_same_seed_same_population(self):
        ctx = ScheduleContext.from_problem(small_example())
        a = build_genome(ctx, np.random.default_rng(11))
        b = build_genome(ctx, np.random.default_rng(11))
        self.assertEqual(a, b)


class SelectionTests(unittest.TestCase):
    def test_selection_stays_inside_truncated_pool(self):
        population = with_fitness(range(10))
        selector = MaximizeSelector(selection_ratio=0.5, num_parents=20)
        self.assertEqual(selector.pool_size(10), 5)
        parents = selector.select(population, np.random.default_rng(0))
        self.assertLessEqual(len(parents), 5)
        for p in parents:
            self.assertGreaterEqual(p.fitness, 5)

    def test_reference_pool_size(self):
        selector = MaximizeSelector(0.85, 20)
        self.assertEqual(selector.pool_size(200), 170)
        self.assertEqual(selector.pool_size(7), math.ceil(0.85 * 7))
        parents = selector.select(with_fitness(range(200)), np.random.default_rng(1))
        self.assertEqual(len(parents), 20)
        self.assertTrue(all(p.fitness >= 30 for p in parents))

    def test_selection_requires_evaluated_population(self):
        selector = MaximizeSelector()
        with self.assertRaises(ValueError):
            selector.select([Individual(genes=[])], np.random.default_rng(0))
        with self.assertRaises(ValueError):
            selector.select([], np.random.default_rng(0))
        with self.assertRaises(ValueError):
            MaximizeSelector(selection_ratio=0.0)


class CrossoverTests(StructureAssertions, unittest.TestCase):
    def setUp(self):
        self.ctx = ScheduleContext.from_problem(small_example())
        self.rng = np.random.default_rng(5)
        self.a = build_genome(self.ctx, self.rng)
        self.b = build_genome(self.ctx, self.rng)

    def test_all_strategies_preserve_length_and_structure(self):
        for strategy in (UniformCrossover(), SinglePointCrossover(), MultiPointCrossover(4)):
            c1, c2 = strategy.recombine(self.a, self.b, self.rng)
            self.assertValidGenome(c1, self.ctx)
            self.assertValidGenome(c2, self.ctx)

    def test_base_strategy_requires_recombine(self):
        with self.assertRaises(TypeError):
            CrossoverStrategy()

    def test_uniform_children_are_complementary(self):
        c1, c2 = UniformCrossover().recombine(self.a, self.b, self.rng)
        for i, (x, y) in enumerate(zip(c1, c2)):
            self.assertIn((x, y), [(self.a[i], self.b[i]), (self.b[i], self.a[i])])

    def test_single_point_takes_prefix_from_first_parent(self):
        c1, c2 = SinglePointCrossover().recombine(self.a, self.b, self.rng)
        cut = next(i for i in range(1, len(self.a) + 1)
                   if i == len(self.a) or c1[i:] == self.b[i:])
        self.assertEqual(c1[:cut], self.a[:cut])
        self.assertEqual(c2[:cut], self.b[:cut])
        self.assertEqual(c2[cut:], self.a[cut:])

    def test_multi_point_cuts_are_bounded(self):
        strategy = MultiPointCrossover(points=50)
        cuts = strategy.cut_points(5, self.rng)
        self.assertEqual(cuts, [1, 2, 3, 4])
        c1, c2 = strategy.recombine(self.a[:5], self.b[:5], self.rng)
        self.assertEqual(c1, [self.a[0], self.b[1], self.a[2], self.b[3], self.a[4]])
        self.assertEqual(c2, [self.b[0], self.a[1], self.b[2], self.a[3], self.b[4]])

    def test_single_gene_genomes_are_copied(self):
        for strategy in (SinglePointCrossover(), MultiPointCrossover()):
            c1, c2 = strategy.recombine(self.a[:1], self.b[:1], self.rng)
            self.assertEqual((c1, c2), ([self.a[0]], [self.b[0]]))

    def test_mismatched_parents_are_rejected(self):
        with self.assertRaises(ValueError):
            UniformCrossover().recombine(self.a, self.b[:-1], self.rng)

    def test_breed_yields_two_children_per_pair(self):
        parents = [Individual(genes=self.a), Individual(genes=self.b), Individual(genes=self.a)]
        children = UniformCrossover().breed(parents, self.rng)
        self.assertEqual(len(children), 4)
        for child in children:
            self.assertIsNone(child.fitness)
            self.assertValidGenome(child.genes, self.ctx)

    def test_make_crossover(self):
        self.assertIsInstance(make_crossover("uniform"), UniformCrossover)
        self.assertIsInstance(make_crossover("single_point"), SinglePointCrossover)
        multi = make_crossover("multi_point", points=2)
        self.assertIsInstance(multi, MultiPointCrossover)
        self.assertEqual(multi.points, 2)
        with self.assertRaises(ValueError):
            make_crossover("two_point")


class MutationTests(StructureAssertions, unittest.TestCase):
    def setUp(self):
        self.ctx = ScheduleContext.from_problem(small_example())
        self.rng = np.random.default_rng(9)

    def test_mutated_gene_keeps_subject_and_eligibility(self):
        for _ in range(200):
            gene = mutate_gene(Gene(4, 1, 19), self.ctx, self.rng)
            self.assertEqual(gene.subject, 4)
            self.assertIn(gene.lecturer, [1, 2])
            self.assertTrue(0 <= gene.hour < 20)

    def test_full_rate_mutation_keeps_structure(self):
        genes = build_genome(self.ctx, self.rng)
        mutated = mutate_genome(genes, self.ctx, 1.0, self.rng)
        self.assertValidGenome(mutated, self.ctx)
        self.assertEqual([g.subject for g in mutated], [g.subject for g in genes])

    def test_zero_rate_is_identity(self):
        genes = build_genome(self.ctx, self.rng)
        self.assertEqual(mutate_genome(genes, self.ctx, 0.0, self.rng), genes)


class ReinsertionTests(unittest.TestCase):
    def test_better_offspring_fill_the_replaced_share(self):
        population = with_fitness(range(10))
        offspring = with_fitness(range(10, 20))
        merged = ElitistReinserter(0.8).combine(offspring, population)
        self.assertEqual(len(merged), 10)
        self.assertEqual([i.fitness for i in merged], [19, 18, 17, 16, 15, 14, 13, 12, 9, 8])

    def test_elites_beat_worse_offspring(self):
        population = with_fitness(range(10))
        offspring = with_fitness([-1] * 10)
        merged = ElitistReinserter(0.8).combine(offspring, population)
        self.assertEqual(sorted(i.fitness for i in merged), list(range(10)))

    def test_offspring_precedence_keeps_share_for_children(self):
        population = with_fitness(range(10))
        offspring = with_fitness([-1] * 10)
        merged = ElitistReinserter(0.8, offspring_has_precedence=True).combine(offspring, population)
        self.assertEqual([i.fitness for i in merged], [-1] * 8 + [9, 8])

    def test_size_is_preserved_with_few_offspring(self):
        population = with_fitness(range(10))
        merged = ElitistReinserter(0.85).combine(with_fitness([100, 50, -5]), population)
        self.assertEqual(len(merged), 10)
        self.assertEqual(merged[0].fitness, 100)

    def test_reference_share(self):
        self.assertEqual(ElitistReinserter(0.85).num_offspring(200), 170)
        self.assertEqual(ElitistReinserter(1.0).num_offspring(3), 3)


if __name__ == "__main__":
    unittest.main()
