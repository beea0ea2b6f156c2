"""
Full workflow runner for the cyclequant pipeline.
"""

from .aggregation import agg_cq, rollup_cq
from .correction import fdr_cq
from .effect import effect_cq
from .export import export_cq
from .normalization import norm_cq
from .prep import prep_cq
from .qc import qc_cq
from .statistics import stat_cq
from .visualization import viz_cq


def run_cq(config_path, make_plots=True):
    """
    Run every stage from the peptide table to the GO identifier lists.

    Peptides are normalized before the protein roll-up, and all proteins
    are tested before the FDR correction is applied.

    Parameters
    ----------
    config_path : str
        Path to YAML configuration file.
    make_plots : bool, optional
        Create QC, normalization and result figures (default: True).

    Returns
    -------
    dict
        Final data dictionary; 'exported' holds the written file paths.

    Example
    -------
    >>> from cyclequant import run_cq
    >>> data = run_cq('config/cell_cycle.yaml')
    """
    data = prep_cq(config_path)
    if make_plots:
        qc_cq(data)

    data = agg_cq(data)
    data = norm_cq(data, plot=make_plots)
    data = rollup_cq(data)

    data = stat_cq(data)
    data = fdr_cq(data)
    data = effect_cq(data)

    data['exported'] = export_cq(data)
    if make_plots:
        data['figures'] = viz_cq(data)

    return data
