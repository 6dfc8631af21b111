# timetable_ga/model.py
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

GroupId = int
SubjectId = int
LecturerId = int
Hour = int

HOURS = 20


class ProblemError(ValueError):
    """Problema mal formado o inconsistente (referencias colgantes, formas inválidas)."""


@dataclass(frozen=True)
class Problem:
    group_requirements: Dict[GroupId, List[Tuple[SubjectId, int]]]  # (subject, hours) por grupo
    lecturer_requirements: Dict[LecturerId, int]                   # cupo de horas por docente
    subject_requirements: Dict[SubjectId, List[LecturerId]]        # docentes aptos por materia

    def validate(self) -> None:
        for lecturer, quota in self.lecturer_requirements.items():
            if quota < 0:
                raise ProblemError(f"El docente {lecturer} tiene un cupo negativo ({quota})")

        for subject, lecturers in self.subject_requirements.items():
            for lecturer in lecturers:
                if lecturer not in self.lecturer_requirements:
                    raise ProblemError(
                        f"La materia {subject} referencia al docente inexistente {lecturer}"
                    )

        total = 0
        for group, reqs in self.group_requirements.items():
            for subject, hours in reqs:
                if subject not in self.subject_requirements:
                    raise ProblemError(f"El grupo {group} referencia a la materia inexistente {subject}")
                if not self.subject_requirements[subject]:
                    raise ProblemError(f"La materia {subject} no tiene docentes aptos")
                if hours < 0:
                    raise ProblemError(
                        f"El grupo {group} pide horas negativas para la materia {subject}"
                    )
                total += hours

        if total == 0:
            raise ProblemError("El problema no tiene reuniones que programar")


@dataclass(frozen=True)
class Meeting:
    group: GroupId
    subject: SubjectId


@dataclass(frozen=True)
class Gene:
    # Un "gen" = asignación (docente, hora) para la reunión en la misma posición
    subject: SubjectId
    lecturer: LecturerId
    hour: Hour


@dataclass
class Individual:
    genes: List[Gene]
    fitness: Optional[int] = None
    generation: int = 0


def build_meetings(problem: Problem) -> Tuple[Meeting, ...]:
    """
    Expande los requisitos de cada grupo en una reunión por hora requerida.

    Los grupos se recorren en orden ascendente y las materias en el orden
    declarado; ese orden es el índice canónico de todos los genomas.
    """
    meetings: List[Meeting] = []
    for group in sorted(problem.group_requirements):
        for subject, hours in problem.group_requirements[group]:
            meetings.extend(Meeting(group, subject) for _ in range(hours))
    return tuple(meetings)


@dataclass(frozen=True)
class ScheduleContext:
    problem: Problem
    meetings: Tuple[Meeting, ...]
    hours: int = HOURS

    @classmethod
    def from_problem(cls, problem: Problem, hours: int = HOURS) -> "ScheduleContext":
        if hours < 1:
            raise ProblemError(f"hours debe ser positivo, se recibió {hours}")
        problem.validate()
        return cls(problem=problem, meetings=build_meetings(problem), hours=hours)

    def eligible_lecturers(self, subject: SubjectId) -> List[LecturerId]:
        return self.problem.subject_requirements[subject]
