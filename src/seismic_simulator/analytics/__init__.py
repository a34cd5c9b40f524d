"""Derived analytics built on top of a simulation run."""

from .aftershocks import AftershockEvent, generate_aftershock_sequence
from .cascade import BuildingStatus, CityBuilding, simulate_city_cascade
from .casualties import CasualtyEstimate, estimate_casualties
from .disaster import (
    DisasterState,
    create_initial_disaster_state,
    simulate_disaster_timeline,
    update_disaster_state,
)
from .dna import StructuralDNA, calculate_structural_dna
from .recommendations import Recommendation, generate_recommendations
from .retrofit import FloorRetrofit, Reinforcement, RetrofitAssessment, assess_retrofit
from .sensors import SensorReading, generate_sensor_readings
from .waves import WaveState, arrival_times, calculate_wave_progression

__all__ = [
    "AftershockEvent",
    "BuildingStatus",
    "CasualtyEstimate",
    "CityBuilding",
    "DisasterState",
    "FloorRetrofit",
    "Recommendation",
    "Reinforcement",
    "RetrofitAssessment",
    "SensorReading",
    "StructuralDNA",
    "WaveState",
    "arrival_times",
    "assess_retrofit",
    "calculate_structural_dna",
    "calculate_wave_progression",
    "create_initial_disaster_state",
    "estimate_casualties",
    "generate_aftershock_sequence",
    "generate_recommendations",
    "generate_sensor_readings",
    "simulate_city_cascade",
    "simulate_disaster_timeline",
    "update_disaster_state",
]
