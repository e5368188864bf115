"""
Bayesian hierarchical model of corrosion growth, fitted with PyMC.

Each anomaly i grows linearly from zero depth at t = 0:

    depth_ij ~ Normal(rate_i * t_ij, depth_sd_ij)
    log rate_i = log_rate_mu + log_rate_sigma * z_i,   z_i ~ Normal(0, 1)

The non-centred form avoids the funnel geometry of hierarchical scales with
few inspections per anomaly. Depths flagged as missing are latent variables,
so their posterior draws are imputations.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
import warnings

import numpy as np
import pandas as pd
import pymc as pm
import arviz as az

from .exceptions import InvalidParameterError, SamplerConvergenceError


INSPECTION_COLUMNS = ('anomaly_id', 'time', 'depth', 'depth_sd', 'missing')

CONVERGENCE_VARS = ['log_rate_mu', 'log_rate_sigma', 'rate']


def validate_inspection_data(data: pd.DataFrame) -> pd.DataFrame:
    """
    Check an inspection table and return a normalised copy.

    A 'missing' column is derived from NaN depths when absent.
    """
    required = [c for c in INSPECTION_COLUMNS if c != 'missing']
    absent = [c for c in required if c not in data.columns]
    if absent:
        raise InvalidParameterError(f"Inspection data is missing columns: {absent}")

    out = data.copy()
    if 'missing' not in out.columns:
        out['missing'] = out['depth'].isna()
    out['missing'] = out['missing'].astype(bool)

    if out['depth'][~out['missing']].isna().any():
        raise InvalidParameterError("Observed rows must have a depth")
    if (out['time'] <= 0).any():
        raise InvalidParameterError("Inspection times must be > 0")
    if (out['depth_sd'].dropna() <= 0).any():
        raise InvalidParameterError("depth_sd must be > 0")
    if out['depth_sd'][~out['missing']].isna().any():
        raise InvalidParameterError("Observed rows must have a depth_sd")

    return out.reset_index(drop=True)


@dataclass
class CorrosionPosterior:
    """Posterior draws from the corrosion growth model."""
    anomaly_ids: np.ndarray
    growth_rate: np.ndarray            # (n_draws, n_anomalies), mm/yr
    mean_rate: np.ndarray              # (n_draws,), population mean rate
    imputed_depths: np.ndarray         # (n_draws, n_missing)
    missing_rows: np.ndarray           # data row index of each imputed depth
    rhat: Dict[str, float] = field(default_factory=dict)

    @property
    def n_draws(self) -> int:
        return self.growth_rate.shape[0]

    def rate_draws(self, anomaly_id) -> np.ndarray:
        """Growth-rate draws for one anomaly."""
        matches = np.flatnonzero(self.anomaly_ids == anomaly_id)
        if matches.size == 0:
            raise KeyError(f"Unknown anomaly '{anomaly_id}'")
        return self.growth_rate[:, matches[0]]

    def depth_draws(self, anomaly_id, time: float) -> np.ndarray:
        """Predicted true depth of one anomaly at `time` (no measurement error)."""
        return self.rate_draws(anomaly_id) * time

    def summary(self, quantiles=(0.05, 0.95)) -> pd.DataFrame:
        """Posterior growth-rate summary per anomaly."""
        lo, hi = np.quantile(self.growth_rate, quantiles, axis=0)
        return pd.DataFrame({
            'anomaly_id': self.anomaly_ids,
            'rate_mean': self.growth_rate.mean(axis=0),
            'rate_sd': self.growth_rate.std(axis=0),
            f'rate_q{round(quantiles[0] * 100):02d}': lo,
            f'rate_q{round(quantiles[1] * 100):02d}': hi,
        })

    def impute(self, data: pd.DataFrame) -> pd.DataFrame:
        """Copy of `data` with missing depths replaced by their posterior mean."""
        out = data.copy().reset_index(drop=True)
        if len(self.missing_rows):
            out.loc[self.missing_rows, 'depth'] = self.imputed_depths.mean(axis=0)
        return out


def _max_rhat(idata, var_names) -> Dict[str, float]:
    rhat = az.rhat(idata, var_names=var_names)
    return {name: float(np.nanmax(rhat[name].values)) for name in rhat.data_vars}


def fit_corrosion_model(
    data: pd.DataFrame,
    draws: int = 1000,
    tune: int = 1000,
    chains: int = 2,
    cores: int = 1,
    seed: Optional[int] = None,
    prior_rate: float = 0.3,
    target_accept: float = 0.9,
    rhat_threshold: float = 1.05,
    progressbar: bool = False,
    verbose: bool = False
) -> CorrosionPosterior:
    """
    Fit the hierarchical growth model by NUTS sampling.

    Args:
        data: Inspection table (anomaly_id, time, depth, depth_sd, missing)
        draws: Posterior draws per chain
        tune: Tuning steps per chain
        chains: Number of chains (R-hat needs at least two)
        cores: Parallel chains
        seed: Random seed
        prior_rate: Prior median growth rate (mm/yr)
        target_accept: NUTS target acceptance rate
        rhat_threshold: Largest acceptable R-hat
        progressbar: Show PyMC progress bar
        verbose: Print sampling and convergence info

    Returns:
        CorrosionPosterior

    Raises:
        SamplerConvergenceError: if any monitored R-hat exceeds rhat_threshold
    """
    if prior_rate <= 0:
        raise InvalidParameterError(f"prior_rate must be > 0, got {prior_rate}")
    data = validate_inspection_data(data)

    codes, anomaly_ids = pd.factorize(data['anomaly_id'], sort=True)
    missing = data['missing'].to_numpy()
    observed = ~missing
    time = data['time'].to_numpy(dtype=float)
    depth = data['depth'].to_numpy(dtype=float)
    depth_sd = data['depth_sd'].to_numpy(dtype=float)
    # missing rows may lack a measurement error; use the typical one
    depth_sd = np.where(np.isnan(depth_sd), np.nanmedian(depth_sd[observed]), depth_sd)

    coords = {'anomaly': np.asarray(anomaly_ids)}
    with pm.Model(coords=coords):
        log_rate_mu = pm.Normal('log_rate_mu', mu=np.log(prior_rate), sigma=1.0)
        log_rate_sigma = pm.HalfNormal('log_rate_sigma', sigma=0.5)
        z = pm.Normal('z', mu=0.0, sigma=1.0, dims='anomaly')
        rate = pm.Deterministic(
            'rate', pm.math.exp(log_rate_mu + log_rate_sigma * z), dims='anomaly'
        )
        pm.Deterministic(
            'mean_rate', pm.math.exp(log_rate_mu + 0.5 * log_rate_sigma ** 2)
        )

        pm.Normal(
            'depth_obs',
            mu=rate[codes[observed]] * time[observed],
            sigma=depth_sd[observed],
            observed=depth[observed]
        )
        if missing.any():
            pm.Normal(
                'depth_missing',
                mu=rate[codes[missing]] * time[missing],
                sigma=depth_sd[missing]
            )

        if verbose:
            print(f"Sampling corrosion model: {len(anomaly_ids)} anomalies, "
                  f"{observed.sum()} observed / {missing.sum()} missing depths")
            print(f"  Chains: {chains}, draws: {draws}, tune: {tune}")

        idata = pm.sample(
            draws=draws,
            tune=tune,
            chains=chains,
            cores=cores,
            target_accept=target_accept,
            random_seed=seed,
            progressbar=progressbar
        )

    rhat: Dict[str, float] = {}
    if chains < 2:
        warnings.warn("R-hat needs at least two chains; convergence not checked")
    else:
        rhat = _max_rhat(idata, CONVERGENCE_VARS)
        if verbose:
            for name, value in rhat.items():
                status = "ok" if value <= rhat_threshold else "NOT CONVERGED"
                print(f"  R-hat {name}: {value:.4f} {status}")
        worst = max(rhat.values())
        if worst > rhat_threshold:
            raise SamplerConvergenceError(
                f"MCMC did not converge: max R-hat {worst:.3f} > {rhat_threshold}",
                rhat=rhat
            )

    posterior = idata.posterior
    n_anomalies = len(anomaly_ids)
    growth_rate = posterior['rate'].values.reshape(-1, n_anomalies)
    mean_rate = posterior['mean_rate'].values.reshape(-1)
    if missing.any():
        imputed = posterior['depth_missing'].values.reshape(-1, int(missing.sum()))
    else:
        imputed = np.empty((growth_rate.shape[0], 0))

    return CorrosionPosterior(
        anomaly_ids=np.asarray(anomaly_ids),
        growth_rate=growth_rate,
        mean_rate=mean_rate,
        imputed_depths=imputed,
        missing_rows=np.flatnonzero(missing),
        rhat=rhat
    )
