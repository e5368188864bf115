"""
Airborne infection risk in a well-mixed room.

Concentration of infectious quanta C (quanta/m^3) follows

    dC/dt = n * E / V - lambda * C,    C(0) = 0

with n occupants each emitting E quanta/h (population-averaged), room volume
V and first-order loss rate lambda = ventilation + deposition + decay (1/h).
The ODE is stepped with its exact exponential solution over fixed steps. The
inhaled dose is a fixed-step sum (step-end concentration times step length),
so it converges to the continuous dose from above as the step count grows.
The dose is compared against an exponential dose-response law:

    P(infection) = 1 - exp(-dose / D0)
"""

from dataclasses import dataclass

import numpy as np
from scipy import stats

from .exceptions import InvalidParameterError


def loss_rate(
    ventilation_rate: float,
    deposition_rate: float = 0.3,
    decay_rate: float = 0.6
) -> float:
    """
    Total first-order removal rate of airborne quanta (1/h).

    Args:
        ventilation_rate: Air changes per hour
        deposition_rate: Gravitational settling (1/h)
        decay_rate: Biological decay of the pathogen (1/h)
    """
    for name, value in (
        ('ventilation_rate', ventilation_rate),
        ('deposition_rate', deposition_rate),
        ('decay_rate', decay_rate),
    ):
        if value < 0:
            raise InvalidParameterError(f"{name} must be >= 0, got {value}")
    total = ventilation_rate + deposition_rate + decay_rate
    if total <= 0:
        raise InvalidParameterError("Total loss rate must be > 0")
    return total


def infection_probability(
    occupancy,
    volume: float,
    loss_rate: float,
    duration: float,
    n_steps: int,
    emission_rate: float,
    inhalation_rate: float,
    infectious_dose: float = 1.0
):
    """
    Per-person infection probability after `duration` hours of occupancy.

    Args:
        occupancy: Number of occupants (scalar or array)
        volume: Room volume (m^3)
        loss_rate: Total removal rate (1/h)
        duration: Exposure time (h)
        n_steps: Number of fixed time steps
        emission_rate: Quanta emitted per occupant per hour
        inhalation_rate: Breathing rate (m^3/h)
        infectious_dose: Dose-response constant D0 (quanta)

    Returns:
        Probability in [0, 1], same shape as occupancy
    """
    n = np.asarray(occupancy, dtype=float)
    if np.any(n < 0):
        raise InvalidParameterError("occupancy must be >= 0")
    if volume <= 0:
        raise InvalidParameterError(f"volume must be > 0, got {volume}")
    if loss_rate <= 0:
        raise InvalidParameterError(f"loss_rate must be > 0, got {loss_rate}")
    if duration <= 0:
        raise InvalidParameterError(f"duration must be > 0, got {duration}")
    if int(n_steps) != n_steps or n_steps < 1:
        raise InvalidParameterError(f"n_steps must be a positive integer, got {n_steps}")
    if emission_rate < 0 or inhalation_rate < 0:
        raise InvalidParameterError("emission_rate and inhalation_rate must be >= 0")
    if infectious_dose <= 0:
        raise InvalidParameterError(f"infectious_dose must be > 0, got {infectious_dose}")

    dt = duration / n_steps
    decay = np.exp(-loss_rate * dt)
    c_ss = n * emission_rate / (volume * loss_rate)

    c = np.zeros_like(n)
    dose = np.zeros_like(n)
    for _ in range(int(n_steps)):
        c = c_ss + (c - c_ss) * decay
        # dose accrues at the step-end concentration
        dose += inhalation_rate * c * dt

    p = -np.expm1(-dose / infectious_dose)
    p = np.clip(p, 0.0, 1.0)
    return float(p) if p.ndim == 0 else p


def population_infection_pmf(probability: float, population: int) -> np.ndarray:
    """
    Binomial distribution of the number of infections.

    Returns:
        Array of length population + 1, entry k = P(k infections)
    """
    if not 0.0 <= probability <= 1.0:
        raise InvalidParameterError(f"probability must be in [0, 1], got {probability}")
    if int(population) != population or population < 0:
        raise InvalidParameterError(f"population must be a non-negative integer, got {population}")
    k = np.arange(int(population) + 1)
    return stats.binom.pmf(k, int(population), probability)


def expected_infections(probability: float, population: int) -> float:
    """Mean number of infections, weighted over the binomial pmf."""
    pmf = population_infection_pmf(probability, population)
    return float(np.dot(np.arange(len(pmf)), pmf))


@dataclass
class AirborneInfectionModel:
    """
    Room and pathogen constants for the infection model.

    Defaults describe a 1000 m^3 open-plan office over an 8 hour day.
    """
    volume: float = 1000.0
    duration: float = 8.0
    n_steps: int = 100
    emission_rate: float = 0.075
    inhalation_rate: float = 0.5
    infectious_dose: float = 1.0

    def probability(self, occupancy, loss_rate: float):
        """Infection probability for the given occupancy and loss rate."""
        return infection_probability(
            occupancy,
            volume=self.volume,
            loss_rate=loss_rate,
            duration=self.duration,
            n_steps=self.n_steps,
            emission_rate=self.emission_rate,
            inhalation_rate=self.inhalation_rate,
            infectious_dose=self.infectious_dose
        )
