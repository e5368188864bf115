# Decision-analysis case studies
#
# Each scenario defines:
# - Actions and their fixed costs
# - Outcome model for the chance variable
# - Prior draws of the chance variable
# - Value-of-information analysis via the shared Scenario interface

from .base import (
    Scenario,
    summarise_voi,
)

from .ventilation import (
    # Actions and parameters
    VentilationAction,
    VentilationParams,
    DEFAULT_VENTILATION_ACTIONS,
    DEFAULT_INFORMATION_SOURCES,
    # Decision problem
    VentilationProblem,
    # Scenario class
    VentilationScenario,
    # Reporting
    print_ventilation_summary,
    run_ventilation_example,
)

from .corrosion import (
    # Inspection data
    read_inspection_data,
    generate_inspection_data,
    # Decision problem
    CorrosionCosts,
    CorrosionRepairProblem,
    anomaly_states,
    # Inspection VoI
    inspection_voi_table,
    read_voi_results,
    VOI_COLUMNS,
    # Scenario class
    CorrosionScenario,
)

__all__ = [
    # Base
    'Scenario',
    'summarise_voi',
    # Ventilation
    'VentilationAction',
    'VentilationParams',
    'DEFAULT_VENTILATION_ACTIONS',
    'DEFAULT_INFORMATION_SOURCES',
    'VentilationProblem',
    'VentilationScenario',
    'print_ventilation_summary',
    'run_ventilation_example',
    # Corrosion
    'read_inspection_data',
    'generate_inspection_data',
    'CorrosionCosts',
    'CorrosionRepairProblem',
    'anomaly_states',
    'inspection_voi_table',
    'read_voi_results',
    'VOI_COLUMNS',
    'CorrosionScenario',
]
