# timetable_ga/report.py
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from .model import Gene, ScheduleContext

GROUP_ORDER = ["group", "hour", "subject", "lecturer"]
LECTURER_ORDER = ["lecturer", "hour", "subject", "group"]


def schedule_rows(ctx: ScheduleContext, genes: Sequence[Gene]) -> List[Dict[str, int]]:
    if len(genes) != len(ctx.meetings):
        raise ValueError(
            f"El genoma tiene {len(genes)} genes pero hay {len(ctx.meetings)} reuniones"
        )
    return [
        {"group": m.group, "subject": m.subject, "lecturer": g.lecturer, "hour": g.hour}
        for m, g in zip(ctx.meetings, genes)
    ]


def _sorted_listing(ctx: ScheduleContext, genes: Sequence[Gene], order: List[str]) -> pd.DataFrame:
    df = pd.DataFrame(schedule_rows(ctx, genes), columns=order)
    return df.sort_values(order, kind="mergesort").reset_index(drop=True)


def schedule_by_group(ctx: ScheduleContext, genes: Sequence[Gene]) -> pd.DataFrame:
    return _sorted_listing(ctx, genes, GROUP_ORDER)


def schedule_by_lecturer(ctx: ScheduleContext, genes: Sequence[Gene]) -> pd.DataFrame:
    return _sorted_listing(ctx, genes, LECTURER_ORDER)


def format_schedule(df: pd.DataFrame) -> str:
    """Una línea por fila, p. ej. ``group 0, hour 3, subject 1, lecturer 2``."""
    lines = []
    for row in df.itertuples(index=False):
        lines.append(", ".join(f"{col} {val}" for col, val in zip(df.columns, row)))
    return "\n".join(lines)


def occupancy_matrices(ctx: ScheduleContext, genes: Sequence[Gene]) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Matrices de conteo [grupo x hora] y [docente x hora].

    0 = libre, 1 = ocupado, >1 = choque.
    """
    rows = schedule_rows(ctx, genes)
    groups = sorted(ctx.problem.group_requirements)
    lecturers = sorted(ctx.problem.lecturer_requirements)
    g_index = {g: i for i, g in enumerate(groups)}
    l_index = {t: i for i, t in enumerate(lecturers)}

    count_group = np.zeros((len(groups), ctx.hours), dtype=int)
    count_lecturer = np.zeros((len(lecturers), ctx.hours), dtype=int)
    for r in rows:
        count_group[g_index[r["group"]], r["hour"]] += 1
        count_lecturer[l_index[r["lecturer"]], r["hour"]] += 1

    hours = list(range(ctx.hours))
    return (
        pd.DataFrame(count_group, index=pd.Index(groups, name="group"), columns=hours),
        pd.DataFrame(count_lecturer, index=pd.Index(lecturers, name="lecturer"), columns=hours),
    )


def export_outputs(result, ctx: ScheduleContext, out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    schedule_by_group(ctx, result.best.genes).to_csv(out_dir / "schedule_by_group.csv", index=False)
    schedule_by_lecturer(ctx, result.best.genes).to_csv(out_dir / "schedule_by_lecturer.csv", index=False)
    pd.DataFrame(
        result.history,
        columns=["gen", "avg_fitness", "best_fitness", "duration", "processing_time"],
    ).to_csv(out_dir / "history.csv", index=False)
    metrics = {
        "best_fitness": result.best_fitness,
        "highest_possible_fitness": len(ctx.meetings),
        "generation_found": result.generation_found,
        "generations_ran": result.generations,
        "stop_reason": result.stop_reason.value,
        "time_sec": result.duration,
        "processing_time_sec": result.processing_time,
    }
    pd.DataFrame([metrics]).to_csv(out_dir / "metrics.csv", index=False)
