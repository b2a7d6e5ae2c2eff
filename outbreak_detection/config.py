"""Configuration management for outbreak detection experiments."""

import hashlib
import json
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SimulationParameters(BaseModel):
    """Immutable parameter set for one simulation experiment.

    Instances are hashable and compare by value, so they can key result maps.
    """

    model_config = ConfigDict(frozen=True)

    network_name: str = Field(description="Name of the network the parameters apply to")
    time_horizon: int = Field(ge=1, description="Number of daily time steps T")
    repetitions: int = Field(ge=1, description="Number of simulation repetitions R")
    false_negative_probability: float = Field(
        gt=0.0, lt=1.0, description="Probability that a test misses an infectious person"
    )
    transmission_probability: float = Field(
        gt=0.0, lt=1.0, description="Daily per-edge transmission probability"
    )
    latency: int = Field(ge=0, description="Days an exposed vertex stays non-infectious")
    external_infection_probability: float = Field(
        gt=0.0, lt=1.0, description="Daily probability of infection from the community"
    )

    def stable_hash(self) -> int:
        """Process-independent 31-bit hash, used to derive random seeds."""
        digest = hashlib.sha256(self.model_dump_json().encode("utf-8")).digest()
        return int.from_bytes(digest[:4], "big") & 0x7FFFFFFF

    def __str__(self) -> str:
        return (
            f"network={self.network_name}, T={self.time_horizon}, "
            f"reps={self.repetitions}, fn={self.false_negative_probability}, "
            f"transmission={self.transmission_probability}, latency={self.latency}, "
            f"external={self.external_infection_probability}"
        )


class ExperimentConfig(BaseModel):
    """Main configuration for a simulate-then-test experiment."""

    # Network
    network_type: Literal["complete", "neighboring", "crossing", "file"] = Field(
        default="neighboring", description="Network family to build"
    )
    network_size: int = Field(default=100, ge=1, description="Number of staff vertices")
    degree: int = Field(default=20, ge=2, description="Vertex degree for circulant networks")
    network_file: Optional[str] = Field(
        default=None, description="Edge-list file (if network_type='file')"
    )
    network_file_separator: Optional[str] = Field(
        default=",", description="Column separator of the edge-list file (None for whitespace)"
    )
    start_label: int = Field(default=2, ge=2, description="Label of the first vertex")

    # Simulation
    time_horizon: int = Field(default=6, ge=1, description="Days simulated")
    repetitions: int = Field(default=50000, ge=1, description="Repetitions per batch")
    false_negative_probability: float = Field(default=0.21, gt=0.0, lt=1.0)
    transmission_probability: float = Field(default=0.05, gt=0.0, lt=1.0)
    latency: int = Field(default=3, ge=0)
    external_infection_probability: float = Field(default=0.0001, gt=0.0, lt=1.0)
    simulation_seeds: List[int] = Field(
        default_factory=lambda: [2507, 2507, 2101, 1308],
        description="Base seeds: initial set, external, internal, initial count",
    )
    batches: int = Field(default=30, ge=1, description="Independent simulation batches")

    # Testing
    tests_per_day: List[int] = Field(
        default_factory=lambda: list(range(1, 51)), description="Values of k to evaluate"
    )
    alpha: float = Field(default=0.05, gt=0.0, lt=1.0, description="CI significance level")
    testing_order: Literal["circular", "random"] = Field(default="random")
    reliability_seed: int = Field(default=3567, description="Base seed for test failures")
    order_seed: int = Field(default=1118, description="Base seed for random testing order")

    # Output
    output_dir: str = Field(default="runs/exp001", description="Output directory for results")
    results_file: str = Field(default="testresults.csv", description="CSV file name")

    @field_validator("simulation_seeds")
    @classmethod
    def validate_seeds(cls, v: List[int]) -> List[int]:
        """Exactly four base seeds are needed."""
        if len(v) != 4:
            raise ValueError(f"simulation_seeds must have 4 entries, got {len(v)}")
        return v

    @field_validator("tests_per_day")
    @classmethod
    def validate_tests_per_day(cls, v: List[int]) -> List[int]:
        if not v or min(v) < 1:
            raise ValueError("tests_per_day must be a non-empty list of positive integers")
        return v

    @model_validator(mode="after")
    def validate_network(self) -> "ExperimentConfig":
        """Check that the network options fit the network type."""
        if self.network_type == "file" and not self.network_file:
            raise ValueError("network_file is required when network_type='file'")
        if self.network_type in ("neighboring", "crossing") and self.degree % 2:
            raise ValueError("degree must be even for circulant networks")
        return self

    def network_name(self) -> str:
        """Name used to match simulation parameters to the network."""
        if self.network_type == "complete":
            return f"completegraph_staff{self.network_size}"
        if self.network_type == "file":
            return Path(self.network_file).stem
        return f"{self.network_type}graph_staff{self.network_size}_degree{self.degree}"

    def simulation_parameters(self) -> SimulationParameters:
        """Build the parameter set described by this config."""
        return SimulationParameters(
            network_name=self.network_name(),
            time_horizon=self.time_horizon,
            repetitions=self.repetitions,
            false_negative_probability=self.false_negative_probability,
            transmission_probability=self.transmission_probability,
            latency=self.latency,
            external_infection_probability=self.external_infection_probability,
        )

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return self.model_dump()

    def to_json(self) -> str:
        """Convert config to JSON string."""
        return self.model_dump_json(indent=2)

    def save(self, path: Path | str) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            f.write(self.to_json())

    @classmethod
    def load(cls, path: Path | str) -> "ExperimentConfig":
        """Load config from JSON file."""
        path = Path(path)
        with open(path, "r") as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def default_nursing_home(cls) -> "ExperimentConfig":
        """Staff network of 100 with 20 contacts each, tested in random order."""
        return cls()

    @classmethod
    def toy_complete_graph(cls) -> "ExperimentConfig":
        """Create toy config: complete graph of 20 staff, a few short runs."""
        return cls(
            network_type="complete",
            network_size=20,
            time_horizon=3,
            repetitions=5,
            false_negative_probability=0.25,
            transmission_probability=0.1,
            latency=2,
            external_infection_probability=0.1,
            batches=1,
            tests_per_day=[1, 2, 3],
            testing_order="circular",
        )
