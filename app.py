# app.py
import pandas as pd
import streamlit as st
import yaml

from timetable_ga.config import GAConfig
from timetable_ga.data_loader import problem_from_dict, small_example
from timetable_ga.ga import GeneticSolver
from timetable_ga.model import ScheduleContext
from timetable_ga.report import occupancy_matrices, schedule_by_group, schedule_by_lecturer

# --- CONFIGURACIÓN DE PÁGINA ---
st.set_page_config(page_title="Horarios con Algoritmo Genético", layout="wide", initial_sidebar_state="expanded")


def build_config_from_sidebar() -> GAConfig:
    st.subheader("Parámetros")
    population_size = st.number_input("Tamaño de población", min_value=2, value=200, step=10)
    generations = st.number_input("Límite de generaciones", min_value=1, value=100, step=10)
    selection_ratio = st.slider("Proporción de selección", 0.05, 1.0, 0.85, 0.05)
    num_parents = st.number_input("Padres por selección", min_value=1, value=20)
    crossover = st.selectbox("Cruce", ["uniform", "single_point", "multi_point"])
    crossover_points = st.number_input("Puntos de cruce (multi_point)", min_value=1, value=3)
    mutation_rate = st.slider("Tasa de mutación", 0.0, 1.0, 0.2, 0.05)
    replace_ratio = st.slider("Proporción de reemplazo", 0.05, 1.0, 0.85, 0.05)
    seed = st.number_input("Semilla", min_value=0, value=42)
    return GAConfig(
        population_size=int(population_size),
        generations=int(generations),
        selection_ratio=float(selection_ratio),
        num_parents=int(num_parents),
        crossover=crossover,
        crossover_points=int(crossover_points),
        mutation_rate=float(mutation_rate),
        replace_ratio=float(replace_ratio),
        seed=int(seed),
    )


def load_problem_from_sidebar():
    source = st.radio("Problema", ["Ejemplo pequeño", "Subir archivo"])
    if source == "Ejemplo pequeño":
        return small_example()
    uploaded = st.file_uploader("Restricciones (JSON o YAML)", type=["json", "yaml", "yml"])
    if uploaded is None:
        return None
    return problem_from_dict(yaml.safe_load(uploaded.getvalue()))


def reset_solver(ctx: ScheduleContext, cfg: GAConfig):
    solver = GeneticSolver(ctx, cfg)
    solver.initialize()
    st.session_state.solver = solver
    st.session_state.ctx = ctx
    st.session_state.result = None


def show_solver_state():
    solver = st.session_state.solver
    ctx = st.session_state.ctx
    result = st.session_state.result

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Generación", solver.generation)
    c2.metric("Mejor aptitud", f"{solver.best.fitness} / {solver.highest_fitness}")
    c3.metric("Encontrada en gen.", solver.best.generation)
    c4.metric("Estado", result.stop_reason.value if result else "en curso")

    if solver.history:
        hist = pd.DataFrame(solver.history).set_index("gen")
        st.line_chart(hist[["avg_fitness", "best_fitness"]])

    tab_group, tab_lecturer, tab_matrix = st.tabs(["Por grupo", "Por docente", "Matrices de ocupación"])
    with tab_group:
        st.dataframe(schedule_by_group(ctx, solver.best.genes), height=400, use_container_width=True)
    with tab_lecturer:
        st.dataframe(schedule_by_lecturer(ctx, solver.best.genes), height=400, use_container_width=True)
    with tab_matrix:
        # >1 en una celda indica choque
        by_group, by_lecturer = occupancy_matrices(ctx, solver.best.genes)
        st.caption("Grupo x hora")
        st.dataframe(by_group, use_container_width=True)
        st.caption("Docente x hora")
        st.dataframe(by_lecturer, use_container_width=True)


def main():
    if "solver" not in st.session_state: st.session_state.solver = None
    if "result" not in st.session_state: st.session_state.result = None

    with st.sidebar:
        st.title("🧬 Menú Principal")
        st.markdown("---")
        try:
            problem = load_problem_from_sidebar()
            cfg = build_config_from_sidebar()
        except ValueError as e:
            st.error(f"Datos inválidos: {e}")
            return

    st.header("📋 Asignación de docentes y horas")
    if problem is None:
        st.info("Suba un documento de restricciones para comenzar.")
        return

    c1, c2, c3 = st.columns(3)
    if c1.button("🚀 Inicializar población"):
        try:
            reset_solver(ScheduleContext.from_problem(problem, hours=cfg.hours), cfg)
        except ValueError as e:
            st.error(f"Problema inválido: {e}")
            return

    solver = st.session_state.solver
    if solver is None:
        st.info("Inicialice la población para comenzar.")
        return

    finished = st.session_state.result is not None
    if c2.button("➡️ Avanzar una generación", disabled=finished):
        st.session_state.result = solver.step()
    if c3.button("⏩ Correr hasta terminar", disabled=finished):
        with st.spinner("Evolucionando..."):
            result = None
            while result is None:
                result = solver.step()
            st.session_state.result = result

    show_solver_state()


if __name__ == "__main__":
    main()
