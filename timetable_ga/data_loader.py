# timetable_ga/data_loader.py
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from .model import Problem, ProblemError

SMALL_EXAMPLE_ENV = "SMALL_EXAMPLE"


def small_example() -> Problem:
    group_requirements = {
        0: [(0, 2), (1, 5), (2, 2), (3, 1)],  # 10
        1: [(0, 1), (3, 2), (4, 6), (2, 1)],  # 10
        2: [(0, 1), (2, 8), (3, 1)],          # 10
    }
    lecturer_requirements = {0: 6, 1: 6, 2: 10, 3: 4, 4: 4}
    subject_requirements = {
        0: [3],
        1: [0, 2],
        2: [0, 1],
        3: [4],
        4: [1, 2],
    }
    return Problem(group_requirements, lecturer_requirements, subject_requirements)


def _as_int(value: Any, where: str) -> int:
    # bool es subclase de int; no lo aceptamos como cantidad
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProblemError(f"{where}: se esperaba un entero, se recibió {value!r}")
    return value


def _as_list(value: Any, where: str) -> list:
    if not isinstance(value, list):
        raise ProblemError(f"{where}: se esperaba una lista, se recibió {type(value).__name__}")
    return value


def problem_from_dict(data: Dict[str, Any]) -> Problem:
    """
    Construye un Problem desde el documento de restricciones:

    - ``groups_subjects_hours``: por grupo, lista de ``{subject, hours}``
    - ``teachers_hours``: cupo de horas por docente
    - ``subjects_teachers``: por materia, lista de docentes aptos
    """
    if not isinstance(data, dict):
        raise ProblemError("El documento de restricciones debe ser un objeto mapeo")
    for key in ("groups_subjects_hours", "teachers_hours", "subjects_teachers"):
        if key not in data:
            raise ProblemError(f"Falta la clave '{key}' en el documento de restricciones")

    group_requirements: Dict[int, List[Tuple[int, int]]] = {}
    for group, reqs in enumerate(_as_list(data["groups_subjects_hours"], "groups_subjects_hours")):
        where = f"groups_subjects_hours[{group}]"
        entries = []
        for i, rec in enumerate(_as_list(reqs, where)):
            if not isinstance(rec, dict) or "subject" not in rec or "hours" not in rec:
                raise ProblemError(f"{where}[{i}]: se esperaba {{subject, hours}}")
            entries.append((_as_int(rec["subject"], f"{where}[{i}].subject"),
                            _as_int(rec["hours"], f"{where}[{i}].hours")))
        group_requirements[group] = entries

    lecturer_requirements = {
        lecturer: _as_int(hours, f"teachers_hours[{lecturer}]")
        for lecturer, hours in enumerate(_as_list(data["teachers_hours"], "teachers_hours"))
    }

    subject_requirements = {}
    for subject, lecturers in enumerate(_as_list(data["subjects_teachers"], "subjects_teachers")):
        where = f"subjects_teachers[{subject}]"
        subject_requirements[subject] = [
            _as_int(t, f"{where}[{i}]") for i, t in enumerate(_as_list(lecturers, where))
        ]

    problem = Problem(group_requirements, lecturer_requirements, subject_requirements)
    problem.validate()
    return problem


def load_problem(path: str) -> Problem:
    # JSON es YAML válido, así que un solo parser cubre ambos formatos
    problem_path = Path(path)
    if not problem_path.exists():
        raise ProblemError(f"No existe el archivo de restricciones {path}")
    try:
        data = yaml.safe_load(problem_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ProblemError(f"No se pudo leer {path}: {exc}") from exc
    return problem_from_dict(data)
