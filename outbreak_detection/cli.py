"""Command-line interface using Typer."""

import json
from pathlib import Path
from typing import List, Optional

import numpy as np
import typer
from loguru import logger

from outbreak_detection.analysis import DetectionAnalyzer
from outbreak_detection.config import ExperimentConfig
from outbreak_detection.export import write_results_csv
from outbreak_detection.network import Network
from outbreak_detection.simulation import SimulationRuns

app = typer.Typer(help="Outbreak detection under periodic staff testing")


def build_network(config: ExperimentConfig) -> Network:
    """Build the network described by ``config``."""
    if config.network_type == "complete":
        network = Network.complete(config.network_size, config.start_label)
    elif config.network_type == "neighboring":
        network = Network.neighboring(config.network_size, config.degree, config.start_label)
    elif config.network_type == "crossing":
        network = Network.crossing(config.network_size, config.degree, config.start_label)
    else:
        network = Network.from_edge_list(
            config.network_file, separator=config.network_file_separator
        )
        if network.min_label() < config.start_label:
            network = network.relabel(config.start_label)
    network.name = config.network_name()
    return network


def run_batches(config: ExperimentConfig, network: Network) -> List[SimulationRuns]:
    """Simulate ``config.batches`` batches, offsetting every base seed by the batch index."""
    params = config.simulation_parameters()
    batches = []
    for i in range(config.batches):
        seeds = [seed + i for seed in config.simulation_seeds]
        logger.info(f"Simulation batch {i + 1}/{config.batches}")
        batches.append(SimulationRuns().run(network, [params], seeds))
    return batches


def run_experiment(config: ExperimentConfig) -> DetectionAnalyzer:
    """Simulate all batches and test every requested number of tests per day."""
    network = build_network(config)
    batches = run_batches(config, network)
    analyzer = DetectionAnalyzer()
    for k in config.tests_per_day:
        analyzer.test(
            network,
            batches,
            k,
            config.alpha,
            config.testing_order,
            config.reliability_seed,
            config.order_seed,
        )
    return analyzer


def _load_or_build(config_path: Optional[Path], **overrides) -> ExperimentConfig:
    if config_path is not None:
        return ExperimentConfig.load(config_path)
    return ExperimentConfig(**{k: v for k, v in overrides.items() if v is not None})


@app.command()
def run(
    config_path: Optional[Path] = typer.Option(None, "--config", help="JSON config file"),
    network_type: Optional[str] = typer.Option(None, help="complete, neighboring, crossing or file"),
    network_size: Optional[int] = typer.Option(None, help="Number of staff"),
    degree: Optional[int] = typer.Option(None, help="Degree of circulant networks"),
    network_file: Optional[str] = typer.Option(None, help="Edge-list file"),
    network_file_separator: Optional[str] = typer.Option(None, help="Edge-list column separator"),
    time_horizon: Optional[int] = typer.Option(None, help="Days simulated"),
    repetitions: Optional[int] = typer.Option(None, help="Repetitions per batch"),
    batches: Optional[int] = typer.Option(None, help="Number of batches"),
    latency: Optional[int] = typer.Option(None, help="Latency in days"),
    testing_order: Optional[str] = typer.Option(None, help="circular or random"),
    max_tests_per_day: Optional[int] = typer.Option(None, help="Evaluate k = 1..this value"),
    output_dir: Optional[str] = typer.Option(None, help="Output directory"),
) -> None:
    """Simulate outbreaks and estimate detection probabilities."""
    config = _load_or_build(
        config_path,
        network_type=network_type,
        network_size=network_size,
        degree=degree,
        network_file=network_file,
        network_file_separator=network_file_separator,
        time_horizon=time_horizon,
        repetitions=repetitions,
        batches=batches,
        latency=latency,
        testing_order=testing_order,
        tests_per_day=list(range(1, max_tests_per_day + 1)) if max_tests_per_day else None,
        output_dir=output_dir,
    )
    logger.info(f"Starting experiment on {config.network_name()}")

    output_path = Path(config.output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    config.save(output_path / "config.json")
    logger.info(f"Saved config to {output_path / 'config.json'}")

    analyzer = run_experiment(config)
    write_results_csv(output_path / config.results_file, analyzer, append=True)


@app.command()
def simulate(
    config_path: Optional[Path] = typer.Option(None, "--config", help="JSON config file"),
    output_dir: Optional[str] = typer.Option(None, help="Output directory"),
) -> None:
    """Run a single simulation batch and write a summary of outbreak sizes."""
    config = _load_or_build(config_path, output_dir=output_dir)
    network = build_network(config)
    params = config.simulation_parameters()
    runs = SimulationRuns().run(network, [params], config.simulation_seeds)
    output = runs[params]

    sizes = output.final_sizes()
    summary = {
        "parameters": params.model_dump(),
        "wall_time": output.wall_time,
        "repetitions": len(output),
        "mean_final_infectious": float(np.mean(sizes)),
        "max_final_infectious": int(np.max(sizes)),
        "final_infectious": sizes,
    }

    output_path = Path(config.output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    with open(output_path / "simulation_summary.json", "w") as f:
        json.dump(summary, f, indent=2)
    logger.info(f"Simulation summary written to {output_path / 'simulation_summary.json'}")


@app.command("show-config")
def show_config(
    config_path: Optional[Path] = typer.Option(None, "--config", help="JSON config file"),
) -> None:
    """Print the default or a loaded configuration."""
    config = ExperimentConfig.load(config_path) if config_path else ExperimentConfig()
    typer.echo(config.to_json())


if __name__ == "__main__":
    app()
