from __future__ import annotations

import argparse
import json
import logging
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

if __package__ in {None, ""}:
    # Allow running via ``python stemulator/gradio_app.py`` by adding repo root to sys.path
    sys.path.append(str(Path(__file__).resolve().parents[1]))

import gradio as gr

from stemulator.charts import append_history, export_history_csv, history_frame, plot_population, plot_traits
from stemulator.core.config import SimulationConfig, load_config
from stemulator.core.labs import ScienceLab, bundled_labs, load_labs
from stemulator.core.settings import Environment, FoodAvailability, InvalidParameter, Predation
from stemulator.core.simulation_backend import PopulationSimulationBackend
from stemulator.gradio_controller import GradioSimulationController

logger = logging.getLogger("stemulator.ui")

ALL_PARTS = "all"


def serialize_config(config: SimulationConfig) -> str:
    return json.dumps(config.to_dict(), indent=2)


def normalize_path(file_like: Any) -> Optional[Path]:
    if file_like is None:
        return None
    if isinstance(file_like, (str, Path)):
        return Path(file_like)
    name = getattr(file_like, "name", None)
    if name:
        return Path(name)
    return None


def append_log(log: str, message: str) -> str:
    lines = [line for line in (log or "").splitlines() if line.strip()]
    lines.append(message)
    if len(lines) > 200:
        lines = lines[-200:]
    return "\n".join(lines)


def parse_part(value: Any) -> Optional[int]:
    if value in (None, "", ALL_PARTS):
        return None
    return int(value)


def part_choices_for(lab: Optional[ScienceLab]) -> List[str]:
    if lab is None:
        return [ALL_PARTS]
    return [ALL_PARTS, *(str(part_id) for part_id in lab.part_ids())]


def init_controller(config: SimulationConfig, labs: List[ScienceLab]):
    backend = PopulationSimulationBackend(config)
    controller = GradioSimulationController(backend, config, labs)
    log = append_log("", f"Initialized simulation ({len(labs)} labs loaded)")
    return controller, log, "Stopped", []


def start_sim(controller: GradioSimulationController, log: str):
    if controller is None:
        return log, "Controller not initialized.", "Stopped"
    if controller.start():
        log = append_log(log, "Simulation started.")
    status = "Running" if controller.running else "Stopped"
    return log, status, status


def stop_sim(controller: GradioSimulationController, log: str):
    if controller is None:
        return log, "Controller not initialized.", "Stopped"
    if controller.stop():
        log = append_log(log, "Simulation stopped.")
    return log, "Stopped", "Stopped"


def _view(controller: GradioSimulationController, payload: Dict[str, Any], history: List[Dict[str, Any]]):
    history = append_history(history, payload)
    df = history_frame(history)
    return (
        payload.get("generation"),
        payload.get("population"),
        payload.get("prey"),
        payload.get("predators"),
        payload.get("survival_rate"),
        plot_population(df),
        plot_traits(controller.trait_distribution()),
        df,
        "\n".join(controller.recent_actions()),
        history,
    )


def _empty_view(history: List[Dict[str, Any]]):
    return (0, 0, 0, 0, 0.0, None, None, history_frame(history), "", history)


def tick(controller: GradioSimulationController, history: List[Dict[str, Any]]):
    if controller is None:
        return _empty_view(history)
    return _view(controller, controller.step_or_snapshot(), history)


def step_once(controller: GradioSimulationController, history: List[Dict[str, Any]]):
    if controller is None:
        return _empty_view(history)
    return _view(controller, controller.step_once(), history)


def apply_settings(
    controller: GradioSimulationController,
    log: str,
    environment: str,
    predation: str,
    food_availability: str,
    mutation_rate: float,
):
    if controller is None:
        return log, "Controller not initialized."
    try:
        settings = controller.apply_settings(
            {
                "environment": environment,
                "predation": predation,
                "food_availability": food_availability,
                "mutation_rate": int(mutation_rate),
            }
        )
    except InvalidParameter as exc:
        return log, f"Invalid settings: {exc}"
    log = append_log(log, f"Applied settings: {settings.to_dict()}")
    return log, "Settings applied."


def apply_lab(controller: GradioSimulationController, log: str, lab_id: str, part: Any):
    no_change = (gr.update(), gr.update(), gr.update(), gr.update())
    if controller is None:
        return (log, "Controller not initialized.", [], *no_change)
    try:
        settings = controller.apply_lab(lab_id, parse_part(part))
    except (InvalidParameter, ValueError) as exc:
        return (log, f"Failed to apply lab: {exc}", [], *no_change)
    log = append_log(log, f"Applied lab {lab_id} part {part or ALL_PARTS}")
    return (
        log,
        "Lab applied; population reinitialized.",
        [],
        settings.environment.value,
        settings.predation.value,
        settings.food_availability.value,
        settings.mutation_rate,
    )


def reset_sim(controller: GradioSimulationController, log: str):
    if controller is None:
        return log, "Controller not initialized.", []
    controller.stop()
    controller.reset()
    log = append_log(log, "Simulation reset.")
    return log, "Simulation reset.", []


def lab_parts(controller: GradioSimulationController, lab_id: str):
    lab = None
    if controller is not None:
        lab = next((item for item in controller.labs if item.id == lab_id), None)
    return gr.update(choices=part_choices_for(lab), value=ALL_PARTS)


def tutor_context(controller: GradioSimulationController) -> str:
    if controller is None:
        return ""
    return controller.tutor_context()


def download_history(history: List[Dict[str, Any]]):
    path = export_history_csv(history)
    if path is None:
        return None, "No population history to export."
    return path, f"Exported {len(history)} rows."


def download_config(controller: GradioSimulationController):
    if controller is None:
        return None, "Controller not initialized."
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as fp:
        fp.write(serialize_config(controller.config))
        return fp.name, "Config prepared for download."


def load_config_file(controller: GradioSimulationController, file_like: Any, log: str):
    path = normalize_path(file_like)
    if controller is None or path is None:
        return log, "No config file selected.", []
    try:
        config = load_config(path)
        controller.apply_config(config)
    except (InvalidParameter, ValueError) as exc:
        return log, f"Failed to load config: {exc}", []
    log = append_log(log, f"Loaded config: {path.name}")
    return log, "Config loaded; simulation restarted.", []


def build_demo(config: Optional[SimulationConfig] = None, labs: Optional[List[ScienceLab]] = None) -> gr.Blocks:
    config = config or SimulationConfig()
    labs = list(labs or [])
    first_lab = labs[0] if labs else None
    defaults = config.defaults

    with gr.Blocks(title="STEMulator Natural Selection Lab") as demo:
        gr.Markdown("## STEMulator: Natural Selection Lab")

        controller_state = gr.State()
        log_state = gr.State("")
        history_state = gr.State([])

        with gr.Row():
            with gr.Column(scale=1):
                status_text = gr.Markdown("Stopped")
                with gr.Row():
                    start_btn = gr.Button("Start", variant="primary")
                    stop_btn = gr.Button("Stop")
                with gr.Row():
                    step_btn = gr.Button("Run one generation")
                    reset_btn = gr.Button("Reset")

                gr.Markdown("### Settings")
                environment = gr.Radio(
                    choices=[e.value for e in Environment], value=defaults.environment, label="Environment"
                )
                predation = gr.Radio(
                    choices=[p.value for p in Predation], value=defaults.predation, label="Predation"
                )
                food_availability = gr.Radio(
                    choices=[f.value for f in FoodAvailability],
                    value=defaults.food_availability,
                    label="Food availability",
                )
                mutation_rate = gr.Slider(0, 10, value=defaults.mutation_rate, step=1, label="Mutation rate")
                settings_btn = gr.Button("Apply settings")

                gr.Markdown("### Lab")
                lab_choice = gr.Dropdown(
                    choices=[lab.id for lab in labs],
                    value=first_lab.id if first_lab else None,
                    label="Lab",
                )
                part_choice = gr.Dropdown(
                    choices=part_choices_for(first_lab), value=ALL_PARTS, label="Lab part"
                )
                lab_btn = gr.Button("Apply lab configuration")

                gr.Markdown("### Config")
                with gr.Row():
                    config_upload = gr.File(label="Load config file", file_types=[".json"])
                    config_download_btn = gr.Button("Download config")
                config_download = gr.File(label="Config download")

                gr.Markdown("### Log")
                log_box = gr.Textbox(lines=8, label="Log", interactive=False)
                status_message = gr.Markdown("")

            with gr.Column(scale=2):
                with gr.Row():
                    stat_generation = gr.Number(label="Generation", value=0, precision=0, interactive=False)
                    stat_population = gr.Number(label="Alive", value=0, precision=0, interactive=False)
                    stat_prey = gr.Number(label="Prey", value=0, precision=0, interactive=False)
                    stat_predators = gr.Number(label="Predators", value=0, precision=0, interactive=False)
                    stat_survival = gr.Number(label="Prey share", value=0.0, precision=3, interactive=False)
                population_plot = gr.Plot(label="Population history")
                trait_plot = gr.Plot(label="Prey trait distribution")
                history_table = gr.Dataframe(label="Generations", interactive=False)
                actions_box = gr.Textbox(lines=10, label="Recent actions", interactive=False)
                with gr.Row():
                    history_download_btn = gr.Button("Download history CSV")
                    context_btn = gr.Button("Tutor context")
                history_download = gr.File(label="History download")
                context_box = gr.Markdown("")

        timer = gr.Timer(0.5)

        view_outputs = [
            stat_generation,
            stat_population,
            stat_prey,
            stat_predators,
            stat_survival,
            population_plot,
            trait_plot,
            history_table,
            actions_box,
            history_state,
        ]
        settings_fields = [environment, predation, food_availability, mutation_rate]

        def _init():
            return init_controller(config, labs)

        demo.load(fn=_init, inputs=[], outputs=[controller_state, log_state, status_text, history_state])
        demo.load(fn=lambda log: log, inputs=[log_state], outputs=[log_box])

        start_btn.click(
            fn=start_sim,
            inputs=[controller_state, log_state],
            outputs=[log_state, status_message, status_text],
        )
        start_btn.click(fn=lambda log: log, inputs=[log_state], outputs=[log_box])

        stop_btn.click(
            fn=stop_sim,
            inputs=[controller_state, log_state],
            outputs=[log_state, status_message, status_text],
        )
        stop_btn.click(fn=lambda log: log, inputs=[log_state], outputs=[log_box])

        step_btn.click(fn=step_once, inputs=[controller_state, history_state], outputs=view_outputs)

        reset_btn.click(
            fn=reset_sim,
            inputs=[controller_state, log_state],
            outputs=[log_state, status_message, history_state],
        ).then(fn=tick, inputs=[controller_state, history_state], outputs=view_outputs)
        reset_btn.click(fn=lambda: "Stopped", inputs=[], outputs=[status_text])

        settings_btn.click(
            fn=apply_settings,
            inputs=[controller_state, log_state, *settings_fields],
            outputs=[log_state, status_message],
        )
        settings_btn.click(fn=lambda log: log, inputs=[log_state], outputs=[log_box])

        lab_choice.change(fn=lab_parts, inputs=[controller_state, lab_choice], outputs=[part_choice])
        lab_btn.click(
            fn=apply_lab,
            inputs=[controller_state, log_state, lab_choice, part_choice],
            outputs=[log_state, status_message, history_state, *settings_fields],
        ).then(fn=tick, inputs=[controller_state, history_state], outputs=view_outputs)
        lab_btn.click(fn=lambda log: log, inputs=[log_state], outputs=[log_box])

        config_upload.change(
            fn=load_config_file,
            inputs=[controller_state, config_upload, log_state],
            outputs=[log_state, status_message, history_state],
        )
        config_upload.change(fn=lambda log: log, inputs=[log_state], outputs=[log_box])
        config_download_btn.click(
            fn=download_config,
            inputs=[controller_state],
            outputs=[config_download, status_message],
        )

        history_download_btn.click(
            fn=download_history,
            inputs=[history_state],
            outputs=[history_download, status_message],
        )
        context_btn.click(fn=tutor_context, inputs=[controller_state], outputs=[context_box])

        timer.tick(fn=tick, inputs=[controller_state, history_state], outputs=view_outputs)

    return demo


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="STEMulator natural selection lab")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the simulation random source")
    parser.add_argument("--config", type=str, help="Path to a simulation config JSON file")
    parser.add_argument("--labs", type=str, help="Path to a labs JSON file (default: bundled labs)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--share", action="store_true", help="Create a public Gradio link")
    parser.add_argument("--server-port", type=int, default=None, help="Port for the Gradio server")
    return parser.parse_args(argv)


def build_inputs(args: argparse.Namespace) -> Tuple[SimulationConfig, List[ScienceLab]]:
    config = load_config(Path(args.config).expanduser()) if args.config else SimulationConfig()
    if args.seed is not None:
        config.world.seed = args.seed
    labs = load_labs(Path(args.labs).expanduser()) if args.labs else bundled_labs()
    return config, labs


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(list(argv if argv is not None else sys.argv[1:]))
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config, labs = build_inputs(args)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2
    demo = build_demo(config, labs)
    demo.launch(share=args.share, server_port=args.server_port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
