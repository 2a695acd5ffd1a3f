"""
FILE: main.py
--------------
Session layer and LangGraph wizard for the statistical test advisor.

AdvisorSession owns everything one user works with: the Dataset, its
profile, the wizard selection, the chosen test, the latest result and the
OffloadCoordinator. It is passed explicitly; nothing here is global.

Pipeline flow (one graph per session):
  data_profiler
      ↓ [interrupt: show column profile, confirm proceed]
  choose_columns
      ↓ [interrupt ×2: grouping / x column, then measurement / y column]
  wizard
      ↓ [interrupt ×4: design, characteristics, samples, groups]
  methodologist
      ↓ [interrupt: pick one of the recommended tests]
  assumption_checker
      ↓ [interrupt: show assumption checks, auto-continue]
  statistician
      ↓
  final_report
      ↓ [END]

Human-in-the-loop:
  interrupt() pauses execution and hands a payload to the caller under
  the "__interrupt__" key. The caller collects input and resumes with
  Command(resume=user_response).
"""

import logging
import sys
from typing import Any, TypedDict

import pandas as pd
from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph
from langgraph.types import Command, interrupt

from config import get_log_level
from core.assumption_engine import check_assumptions, summarize_assumptions
from core.errors import InputValidationError, StatEngineError
from core.methodologist_engine import recommend
from core.offload import OffloadCoordinator
from core.profiler_engine import profile
from core.dataset import is_missing
from Schemas.assumption_checker import AssumptionChecks, AssumptionResult
from Schemas.data_profiler_schema import DatasetProfile
from Schemas.dataset import Dataset
from Schemas.methodologist import (
    DataShape,
    Recommendation,
    WIZARD_STEP_CHOICES,
    WizardSelection,
    WizardStep,
)
from Schemas.statistician import TestResult
from Schemas.test_catalog import TestDefinition, TestKind
from Utils.test_requirements_registry import get_test_by_id

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# SESSION
# ─────────────────────────────────────────────

class AdvisorSession:
    """
    Usage:
        with AdvisorSession() as session:
            session.load_csv("scores.csv")
            session.select_columns("group", "score")
            session.choose("design", "comparison")
            ...
            session.select_test(session.recommendations()[0].test.id)
            result = session.run()
    """

    def __init__(self, coordinator: OffloadCoordinator | None = None):
        self.coordinator = coordinator if coordinator is not None else OffloadCoordinator()
        self.dataset: Dataset | None = None
        self.profile: DatasetProfile | None = None
        self.categorical_column: str | None = None
        self.numerical_column: str | None = None
        self.selection = WizardSelection.reset()
        self.selected_test: TestDefinition | None = None
        self.result: TestResult | None = None

    # ── Data ──

    def _replace_dataset(self, dataset: Dataset) -> DatasetProfile:
        """A new upload replaces the dataset wholesale and clears everything derived from it."""
        self.dataset = dataset
        self.profile = profile(dataset)
        self.categorical_column = self.numerical_column = None
        self.selected_test = None
        self.result = None
        return self.profile

    def load_rows(self, rows: list[dict[str, Any]]) -> DatasetProfile:
        return self._replace_dataset(Dataset.from_rows(rows))

    def load_dataframe(self, df: pd.DataFrame) -> DatasetProfile:
        return self._replace_dataset(Dataset.from_dataframe(df))

    def load_csv(self, path: str) -> DatasetProfile:
        """Every cell is read as text; numeric coercion happens in the engine."""
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        return self.load_dataframe(df)

    def _require_dataset(self) -> Dataset:
        if self.dataset is None:
            raise InputValidationError("No data provided.")
        return self.dataset

    def select_columns(self, categorical_column: str, numerical_column: str) -> None:
        dataset = self._require_dataset()
        for column in (categorical_column, numerical_column):
            if not dataset.has_column(column):
                raise InputValidationError(f"Column '{column}' does not exist in the dataset.")
        self.categorical_column = categorical_column
        self.numerical_column = numerical_column

    def _require_columns(self) -> tuple[str, str]:
        if self.categorical_column is None or self.numerical_column is None:
            raise InputValidationError("Select the two columns to analyse first.")
        return self.categorical_column, self.numerical_column

    # ── Wizard ──

    def choose(self, step: WizardStep | str, value: Any) -> WizardSelection:
        self.selection = self.selection.with_choice(step, value)
        return self.selection

    def reset_wizard(self) -> None:
        self.selection = WizardSelection.reset()
        self.selected_test = None

    def observed_shape(self) -> DataShape | None:
        if self.dataset is None or self.categorical_column is None:
            return None
        group_col, value_col = self._require_columns()
        pairs = [
            (row[group_col], row[value_col])
            for row in self.dataset.rows
            if not is_missing(row[group_col]) and not is_missing(row[value_col])
        ]
        return DataShape(
            groups=[group for group, _ in pairs],
            values=[value for _, value in pairs],
            group_column=group_col,
            value_column=value_col,
        )

    def recommendations(self) -> list[Recommendation]:
        return recommend(self.selection, self.observed_shape())

    def select_test(self, test_id: TestKind | str) -> TestDefinition:
        test = get_test_by_id(test_id)
        if test is None:
            raise InputValidationError(f"Unknown test '{test_id}'.")
        self.selected_test = test
        return test

    # ── Computation ──

    def check_assumptions(self, checks: AssumptionChecks | dict | None = None) -> dict[str, AssumptionResult]:
        dataset = self._require_dataset()
        group_col, value_col = self._require_columns()
        # raw columns so outlier indices refer to dataset rows
        return check_assumptions(dataset.column(value_col), dataset.column(group_col), checks)

    def run(self) -> TestResult:
        if self.selected_test is None:
            raise InputValidationError("Choose a test before running it.")
        dataset = self._require_dataset()
        group_col, value_col = self._require_columns()
        self.result = self.coordinator.run_test(self.selected_test.id, dataset, group_col, value_col)
        return self.result

    def close(self) -> None:
        self.coordinator.close()

    def __enter__(self) -> "AdvisorSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# ─────────────────────────────────────────────
# REPORT RENDERING
# ─────────────────────────────────────────────

def render_profile(data_profile: DatasetProfile) -> str:
    lines = [f"Dataset: {data_profile.n_rows} rows x {data_profile.n_cols} columns"]
    for name, col in data_profile.columns.items():
        line = f"  - {name}: {col.column_type.value}, {col.completeness_pct:.1f}% complete"
        if col.numeric_stats is not None:
            stats = col.numeric_stats
            line += f", mean {stats.mean:.4f}, sd {stats.std_dev:.4f}"
        if col.categorical_stats is not None:
            line += f", {col.distinct_count} categories, mode '{col.categorical_stats.mode}'"
        lines.append(line)
    for warning in data_profile.warnings:
        lines.append(f"  ! {warning}")
    return "\n".join(lines)


def render_result(result: TestResult) -> str:
    lines = [f"{result.test_name}", "-" * len(result.test_name)]
    for key, value in result.formatted_statistics().items():
        lines.append(f"  {key}: {value}")
    if result.p_value_method:
        lines.append(f"  p-value method: {result.p_value_method}")
    lines.append(f"  significance: {result.significance.value}")
    if result.effect_size is not None:
        es = result.effect_size
        lines.append(f"  {es.name}: {es.value:.4f} ({es.interpretation})")
    if result.confidence_interval is not None:
        ci = result.confidence_interval
        lines.append(f"  {ci.level:.0%} CI: [{ci.lower:.4f}, {ci.upper:.4f}]")
    if result.power is not None:
        lines.append(f"  power: {result.power.value:.4f}")
    if result.assumptions:
        lines.append(f"  {summarize_assumptions(result.assumptions)}")
    lines += ["", result.interpretation, ""]
    lines += [f"  * {rec}" for rec in result.recommendations]
    lines += [f"  ! {warning}" for warning in result.warnings]
    return "\n".join(lines)


# ─────────────────────────────────────────────
# STATE SCHEMA
# Plain data only, so the checkpointer can store it
# ─────────────────────────────────────────────

class AdvisorState(TypedDict, total=False):
    csv_path:            str
    categorical_column:  str
    numerical_column:    str
    selection:           dict
    test_id:             str
    assumption_summary:  str
    result:              dict
    report:              str
    fatal_error:         str | None


def _option_choice(user_response: Any, options: list[str]) -> str | None:
    """Accepts the option text itself or a 1-based number."""
    response = str(user_response).strip()
    if response in options:
        return response
    if response.isdigit():
        idx = int(response) - 1
        return options[idx] if 0 <= idx < len(options) else None
    return None


# ─────────────────────────────────────────────
# GRAPH CONSTRUCTION
# Nodes close over the session they drive
# ─────────────────────────────────────────────

def build_graph(session: AdvisorSession):
    """Builds and compiles the wizard pipeline bound to one session."""

    def node_data_profiler(state: AdvisorState) -> AdvisorState:
        try:
            data_profile = session.load_csv(state["csv_path"])
        except StatEngineError as exc:
            return {**state, "fatal_error": f"{exc.kind}: {exc.message}"}

        user_response = interrupt({
            "message": render_profile(data_profile),
            "prompt":  "Shall I proceed with the analysis? (yes/no)",
            "type":    "confirm",
        })
        if str(user_response).strip().lower() not in ("yes", "y"):
            return {**state, "fatal_error": "User stopped the wizard after data profiling."}
        return state

    def node_choose_columns(state: AdvisorState) -> AdvisorState:
        data_profile = session.profile
        all_columns = list(data_profile.columns)
        numeric_columns = data_profile.numeric_columns()

        first = _option_choice(interrupt({
            "message": "Choose the grouping (or x) column.",
            "prompt":  "Column:",
            "type":    "choose",
            "options": all_columns,
        }), all_columns)
        second = _option_choice(interrupt({
            "message": "Choose the measurement (or y) column.",
            "prompt":  "Column:",
            "type":    "choose",
            "options": numeric_columns or all_columns,
        }), numeric_columns or all_columns)

        if first is None or second is None:
            return {**state, "fatal_error": "Invalid column choice."}
        session.select_columns(first, second)
        return {**state, "categorical_column": first, "numerical_column": second}

    def node_wizard(state: AdvisorState) -> AdvisorState:
        session.reset_wizard()
        for step in WizardStep:
            options = [choice.value for choice in WIZARD_STEP_CHOICES[step]]
            answer = _option_choice(interrupt({
                "message": f"Wizard step: {step.value}",
                "prompt":  "Your choice:",
                "type":    "choose",
                "options": options,
            }), options)
            if answer is None:
                return {**state, "fatal_error": f"Invalid choice for '{step.value}'."}
            session.choose(step, answer)
        return {**state, "selection": session.selection.model_dump(mode="json")}

    def node_methodologist(state: AdvisorState) -> AdvisorState:
        recs = session.recommendations()
        if not recs:
            return {**state, "fatal_error": "No test matches these answers. Try different choices."}

        labels = [
            f"{rec.test.name} (score {rec.score}, {rec.suitability.value})" for rec in recs
        ]
        user_response = interrupt({
            "message": "Recommended tests, best first.",
            "prompt":  "Choose a test (enter the number):",
            "type":    "choose",
            "options": labels,
        })
        choice = _option_choice(user_response, labels)
        if choice is None:
            return {**state, "fatal_error": "Invalid test choice."}
        test = session.select_test(recs[labels.index(choice)].test.id)
        return {**state, "test_id": test.id.value}

    def node_assumption_checker(state: AdvisorState) -> AdvisorState:
        if not session.selected_test.is_group_based:
            return {**state, "assumption_summary": "Checks are computed with the test."}
        try:
            results = session.check_assumptions()
        except StatEngineError as exc:
            return {**state, "fatal_error": f"{exc.kind}: {exc.message}"}

        lines = [f"  - {r.name}: {r.status.value}. {r.message}" for r in results.values()]
        summary = "\n".join(lines)
        interrupt({
            "message": summary,
            "prompt":  "Proceeding to run the test.",
            "type":    "info",
        })
        return {**state, "assumption_summary": summary}

    def node_statistician(state: AdvisorState) -> AdvisorState:
        try:
            result = session.run()
        except StatEngineError as exc:
            logger.info("Test run failed: %s", exc.message)
            return {**state, "fatal_error": f"{exc.kind}: {exc.message}"}
        return {**state, "result": result.model_dump(mode="json")}

    def node_final_report(state: AdvisorState) -> AdvisorState:
        return {**state, "report": render_result(session.result)}

    def route(next_node: str):
        def _route(state: AdvisorState) -> str:
            return END if state.get("fatal_error") else next_node
        return _route

    builder = StateGraph(AdvisorState)

    # ── Register nodes ──
    builder.add_node("data_profiler",      node_data_profiler)
    builder.add_node("choose_columns",     node_choose_columns)
    builder.add_node("wizard",             node_wizard)
    builder.add_node("methodologist",      node_methodologist)
    builder.add_node("assumption_checker", node_assumption_checker)
    builder.add_node("statistician",       node_statistician)
    builder.add_node("final_report",       node_final_report)

    builder.set_entry_point("data_profiler")

    # ── Conditional edges: any fatal error ends the run ──
    builder.add_conditional_edges("data_profiler",      route("choose_columns"))
    builder.add_conditional_edges("choose_columns",     route("wizard"))
    builder.add_conditional_edges("wizard",             route("methodologist"))
    builder.add_conditional_edges("methodologist",      route("assumption_checker"))
    builder.add_conditional_edges("assumption_checker", route("statistician"))
    builder.add_conditional_edges("statistician",       route("final_report"))

    builder.add_edge("final_report", END)

    # ── Compile with memory checkpointer for interrupt/resume ──
    return builder.compile(checkpointer=MemorySaver())


# ─────────────────────────────────────────────
# PUBLIC ENTRY POINT
# ─────────────────────────────────────────────

def run_advisor(graph, csv_path: str, thread_id: str = "default") -> dict[str, Any]:
    """
    Starts the wizard. The returned state carries "__interrupt__" while
    the graph is waiting for input; pass the answer to resume_advisor().
    """
    config = {"configurable": {"thread_id": thread_id}}
    initial_state: AdvisorState = {"csv_path": csv_path, "fatal_error": None}
    return graph.invoke(initial_state, config=config)


def resume_advisor(graph, user_response: Any, thread_id: str = "default") -> dict[str, Any]:
    config = {"configurable": {"thread_id": thread_id}}
    return graph.invoke(Command(resume=user_response), config=config)


# ─────────────────────────────────────────────
# CLI RUNNER
# Usage: python main.py data.csv
# ─────────────────────────────────────────────

def main(argv: list[str]) -> int:
    logging.basicConfig(level=get_log_level())
    if len(argv) < 2:
        print("Usage: python main.py <csv_path>")
        return 1

    thread_id = "cli_session"
    print("\n" + "=" * 60)
    print("  STATISTICAL TEST ADVISOR")
    print("=" * 60)

    with AdvisorSession() as session:
        graph = build_graph(session)
        state = run_advisor(graph, argv[1], thread_id)

        while state.get("__interrupt__"):
            payload = state["__interrupt__"][0].value
            print(f"\n{payload.get('message', '')}")
            for i, option in enumerate(payload.get("options", []), 1):
                print(f"  {i}. {option}")

            if payload.get("type") == "info":
                user_input = "yes"
            else:
                user_input = input(f"\n{payload.get('prompt', 'Your response:')} ").strip()
            state = resume_advisor(graph, user_input, thread_id)

        if state.get("fatal_error"):
            print(f"\n{state['fatal_error']}")
            return 2
        print("\n" + state.get("report", ""))
    return 0


def cli() -> None:
    sys.exit(main(sys.argv))


if __name__ == "__main__":
    cli()
