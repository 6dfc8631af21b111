import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from timetable_ga.config import load_config
from timetable_ga.data_loader import SMALL_EXAMPLE_ENV, load_problem, small_example
from timetable_ga.ga import GeneticSolver, SimulationError
from timetable_ga.model import ScheduleContext
from timetable_ga.report import (
    export_outputs,
    format_schedule,
    schedule_by_group,
    schedule_by_lecturer,
)

logger = logging.getLogger("timetable_ga")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Asignación de docentes y horas con un algoritmo genético")
    parser.add_argument("--config", default="config.yaml", help="Ruta al archivo de configuración")
    parser.add_argument("--problem", default="data/constraints.json", help="Documento de restricciones (JSON o YAML)")
    parser.add_argument("--small", action="store_true",
                        help=f"Usar el ejemplo pequeño incorporado (también con ${SMALL_EXAMPLE_ENV})")
    parser.add_argument("--seed", type=int, help="Semilla aleatoria")
    parser.add_argument("--generations", type=int, help="Límite de generaciones")
    parser.add_argument("--population", type=int, help="Tamaño de la población")
    parser.add_argument("--workers", type=int, help="Procesos para evaluar la aptitud")
    parser.add_argument("--crossover", choices=["uniform", "single_point", "multi_point"])
    parser.add_argument("--out_dir", default="outputs", help="Directorio de salida")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        overrides = {
            "seed": args.seed,
            "generations": args.generations,
            "population_size": args.population,
            "workers": args.workers,
            "crossover": args.crossover,
        }
        cfg = load_config(args.config)
        cfg = replace(cfg, **{k: v for k, v in overrides.items() if v is not None})

        if args.small or os.environ.get(SMALL_EXAMPLE_ENV) is not None:
            logger.info("Usando el ejemplo pequeño incorporado")
            problem = small_example()
        else:
            logger.info("Cargando restricciones desde %s", args.problem)
            problem = load_problem(args.problem)
        ctx = ScheduleContext.from_problem(problem, hours=cfg.hours)
    except ValueError as exc:
        logger.error("Configuración inválida: %s", exc)
        return 2

    logger.info("Reuniones a programar: %d", len(ctx.meetings))
    solver = GeneticSolver(ctx, cfg)
    try:
        result = solver.evolve()
    except SimulationError as exc:
        logger.error("La simulación falló: %s", exc)
        return 1

    print(result.stop_reason.value)
    print(
        f"Final result after {result.duration:.2f}s: generation: {result.generations}, "
        f"best solution with fitness {result.best_fitness} found in generation "
        f"{result.generation_found}, processing_time: {result.processing_time:.2f}s"
    )

    print("Schedule ordered by groups")
    print(format_schedule(schedule_by_group(ctx, result.best.genes)))
    print("\n\n\nSchedule ordered by lecturers")
    print(format_schedule(schedule_by_lecturer(ctx, result.best.genes)))

    out_dir = Path(args.out_dir)
    export_outputs(result, ctx, out_dir)
    logger.info("Se guardaron resultados en %s", out_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
