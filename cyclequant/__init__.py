"""
Cell-Cycle Quantitative Proteomics Pipeline
===========================================

A reusable Python package for comparing protein abundance between two
cell-cycle stages (M-phase and G1-phase) from peptide-level
mass spectrometry quantification.

Main Functions
--------------
prep_cq()       - Load the peptide table, annotation and configuration
qc_cq()         - Generate quality control plots
agg_cq()        - Collapse modification variants, drop incomplete peptides
norm_cq()       - Equalize total signal across samples
rollup_cq()     - Median roll-up of peptides to master proteins
stat_cq()       - Log2 transform and per-protein t-tests
fdr_cq()        - Benjamini-Hochberg correction
effect_cq()     - Conservative (CI-based) effect-size filter
export_cq()     - Result tables and GO identifier lists
viz_cq()        - Volcano and effect-size plots
simulate_cq()   - Simulation of point-estimate thresholding bias
run_cq()        - Run the whole workflow
save_data()     - Save analysis data for later
load_data()     - Load saved analysis data

Example Workflow
----------------
>>> from cyclequant import prep_cq, agg_cq, norm_cq, rollup_cq
>>> from cyclequant import stat_cq, fdr_cq, effect_cq, export_cq
>>>
>>> data = prep_cq('config/cell_cycle.yaml')
>>> data = agg_cq(data)
>>> data = norm_cq(data)
>>> data = rollup_cq(data)
>>> data = stat_cq(data)
>>> data = fdr_cq(data)
>>> data = effect_cq(data)
>>> export_cq(data)
"""

from .prep import prep_cq
from .qc import qc_cq
from .aggregation import agg_cq, rollup_cq
from .normalization import norm_cq
from .statistics import stat_cq
from .correction import fdr_cq
from .effect import effect_cq
from .export import export_cq
from .visualization import viz_cq
from .simulation import simulate_cq
from .pipeline import run_cq
from .utils import save_data, load_data


__version__ = "0.1.0"

__all__ = [
    'prep_cq',
    'qc_cq',
    'agg_cq',
    'norm_cq',
    'rollup_cq',
    'stat_cq',
    'fdr_cq',
    'effect_cq',
    'export_cq',
    'viz_cq',
    'simulate_cq',
    'run_cq',
    'save_data',
    'load_data',
]
