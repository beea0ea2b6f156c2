"""
Result export for the cyclequant pipeline.

Writes the annotated per-protein results table and the identifier lists
used for Gene Ontology over-representation analysis: the background (all
tested proteins) and one foreground list per direction of change.
"""

import os

import pandas as pd

from .errors import MalformedInputError


def go_identifier_lists(stats_results):
    """
    Build the GO background and foreground identifier lists.

    Returns
    -------
    dict
        'background': all tested proteins
        'up': significant and relevant increases
        'down': significant and relevant decreases

    Raises
    ------
    MalformedInputError
        If the foreground lists overlap or are not subsets of the background.
    """
    background = [str(p) for p in stats_results.index]
    up = [str(p) for p in stats_results.index[stats_results['direction'] == 'up']]
    down = [str(p) for p in stats_results.index[stats_results['direction'] == 'down']]

    overlap = set(up) & set(down)
    if overlap:
        raise MalformedInputError(
            f"Proteins called both up and down: {', '.join(sorted(overlap)[:5])}"
        )
    outside = (set(up) | set(down)) - set(background)
    if outside:
        raise MalformedInputError(
            f"Foreground proteins missing from background: {', '.join(sorted(outside)[:5])}"
        )

    return {'background': background, 'up': up, 'down': down}


def write_identifier_list(ids, path):
    """Write one identifier per line."""
    with open(path, 'w') as f:
        for identifier in ids:
            f.write(f"{identifier}\n")
    return path


def annotate_results(stats_results, annotation):
    """Join protein names and descriptions onto the results table."""
    if annotation is None:
        return stats_results.copy()

    annotated = stats_results.join(annotation[['name', 'description']], how='left')
    annotated[['name', 'description']] = annotated[['name', 'description']].fillna('')
    return annotated


def export_cq(data):
    """
    Save the final results table and the GO identifier lists.

    Creates:
    - tables/protein_results_<comparison>.tsv (all proteins, annotated)
    - tables/protein_changed_<comparison>.tsv (significant and relevant only)
    - go/go_background.txt
    - go/go_foreground_up.txt
    - go/go_foreground_down.txt

    Parameters
    ----------
    data : dict
        Output from effect_cq().

    Returns
    -------
    dict
        Paths of the written files, keyed by content.

    Example
    -------
    >>> data = effect_cq(data)
    >>> paths = export_cq(data)
    """

    print("\n" + "="*80)
    print("EXPORTING RESULTS")
    print("="*80)

    results = data['stats_results']
    if 'direction' not in results.columns:
        raise MalformedInputError("Run effect_cq() before export_cq(): 'direction' is missing")

    comparison = data['stats_params']['comparison']
    tables_dir = data['output_dirs']['tables']
    go_dir = data['output_dirs']['go']
    os.makedirs(tables_dir, exist_ok=True)
    os.makedirs(go_dir, exist_ok=True)

    paths = {}

    # =========================================================================
    # 1. RESULT TABLES
    # =========================================================================
    print(f"\n[1/2] Saving result tables...")

    annotated = annotate_results(results, data.get('annotation'))
    if data.get('annotation') is not None:
        n_named = (annotated['name'] != '').sum()
        print(f"  {n_named}/{len(annotated)} proteins have an annotation")

    annotated = annotated.sort_values('p_value')

    paths['results'] = os.path.join(tables_dir, f'protein_results_{comparison}.tsv')
    annotated.to_csv(paths['results'], sep='\t')
    print(f"  > Saved: protein_results_{comparison}.tsv ({len(annotated)} proteins)")

    changed = annotated[annotated['is_changed']]
    paths['changed'] = os.path.join(tables_dir, f'protein_changed_{comparison}.tsv')
    changed.to_csv(paths['changed'], sep='\t')
    print(f"  > Saved: protein_changed_{comparison}.tsv ({len(changed)} proteins)")

    # =========================================================================
    # 2. GO IDENTIFIER LISTS
    # =========================================================================
    print(f"\n[2/2] Writing GO identifier lists...")

    lists = go_identifier_lists(results)
    for key, filename in [
        ('background', 'go_background.txt'),
        ('up', 'go_foreground_up.txt'),
        ('down', 'go_foreground_down.txt'),
    ]:
        paths[f'go_{key}'] = write_identifier_list(lists[key], os.path.join(go_dir, filename))
        print(f"  > Saved: {filename} ({len(lists[key])} identifiers)")

    print("\n" + "="*80)
    print("EXPORT COMPLETE")
    print("="*80)
    print(f"\nTables: {tables_dir}")
    print(f"GO lists: {go_dir}")
    print("  Submit the foreground lists against the background list to a GO")
    print("  over-representation tool.")
    print("="*80 + "\n")

    return paths
