#!/usr/bin/env python3
"""
RUN_REFERENCE_TREE: Grow, Interpret and Mesh the Reference Tree
===============================================================

This demo runs the full pipeline on the reference grammar:

    axiom  F
    rule   F -> FF&[-/F+F+FL]^[+\\F-F-FL]

1. Rewrite the axiom for N iterations
2. Interpret the string with the 3D turtle
3. Build one mesh per LOD (12 / 8 / 4 radial segments)
4. Print statistics and optionally save the LOD0 buffers

Run with:
    python demos/run_reference_tree.py
    python demos/run_reference_tree.py --iterations 5 --seed 7 --tropism 0.3
    python demos/run_reference_tree.py --out artifacts/tree_lod0.npz

Outputs:
    (optional) .npz with vertices, triangles, normals, uvs, colors, tangents
"""

import argparse
import sys
from pathlib import Path

import numpy as np

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from lsystem_trees.logging_config import setup_logging
from lsystem_trees.pipeline import REFERENCE_AXIOM, REFERENCE_RULE, TreeParams, generate_tree
from lsystem_trees.turtle.state import TurtleConfig


def print_header(text: str):
    """Print a formatted section header."""
    print("\n" + "=" * 70)
    print(f"  {text}")
    print("=" * 70)


def main():
    parser = argparse.ArgumentParser(
        description='Generate the reference L-System tree and report mesh statistics',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python demos/run_reference_tree.py --iterations 4 --seed 42
  python demos/run_reference_tree.py --iterations 3 --branch-probability 0.8
        """
    )
    parser.add_argument('--iterations', type=int, default=4,
                        help='Rewrite passes (default: 4)')
    parser.add_argument('--seed', type=int, default=42,
                        help='Random seed, 0 for a different tree every run (default: 42)')
    parser.add_argument('--tropism', type=float, default=0.0,
                        help='Tropism strength in [0, 1] (default: 0)')
    parser.add_argument('--branch-probability', type=float, default=1.0,
                        help='Chance that each bracketed branch is drawn (default: 1.0)')
    parser.add_argument('--out', type=str, default=None,
                        help='Save LOD0 buffers to this .npz file')
    parser.add_argument('--log-level', type=str, default='WARNING',
                        help='Logging level (default: WARNING)')
    args = parser.parse_args()

    setup_logging(args.log_level, context={'seed': args.seed})

    params = TreeParams(
        axiom=REFERENCE_AXIOM,
        rules=[REFERENCE_RULE],
        iterations=args.iterations,
        random_seed=args.seed,
        turtle=TurtleConfig(
            tropism_strength=args.tropism,
            branch_probability=args.branch_probability,
        ),
    )

    print_header("L-SYSTEM TREE")
    print(f"  Axiom:      {params.axiom}")
    print(f"  Rule:       {REFERENCE_RULE}")
    print(f"  Iterations: {params.iterations}")
    print(f"  Seed:       {params.random_seed}")

    result = generate_tree(
        params,
        on_progress=lambda step, total: print(f"  [{step}/{total}] done"),
    )
    if not result.success:
        print(f"\n  FAILED: {result.error_message}")
        return 1

    stats = result.generation.stats
    print_header("GRAMMAR")
    print(f"  String length:     {stats.final_string_length}")
    print(f"  Passes:            {stats.total_iterations}")
    print(f"  Rules applied:     {stats.rules_applied}")
    print(f"  Termination:       {stats.termination_reason.value}")
    print(f"  Time:              {stats.generation_time_ms:.2f} ms")

    interp = result.interpretation
    print_header("TURTLE")
    print(f"  Segments:          {len(interp.segments)}")
    print(f"  Leaves:            {len(interp.leaves)}")
    print(f"  Max depth:         {interp.max_depth}")
    if interp.segments:
        ends = np.array([s.end_position for s in interp.segments])
        print(f"  Height:            {ends[:, 2].max():.1f}")

    print_header("MESH LODS")
    print(f"  {'LOD':<5}{'Radial':>8}{'Vertices':>10}{'Triangles':>11}{'Leaf verts':>12}")
    for i, (lod, mesh) in enumerate(zip(params.lod_levels, result.lods)):
        print(f"  {i:<5}{lod.radial_segments:>8}{mesh.vertex_count:>10}"
              f"{mesh.triangle_count:>11}{mesh.leaf_vertex_count:>12}")

    if args.out:
        mesh = result.lod(0)
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        np.savez(
            out_path,
            vertices=mesh.vertices,
            triangles=mesh.triangles,
            normals=mesh.normals,
            uvs=mesh.uvs,
            colors=mesh.colors,
            tangents=mesh.tangents,
            branch_vertex_count=mesh.branch_vertex_count,
            branch_triangle_count=mesh.branch_triangle_count,
        )
        print(f"\n  Saved LOD0 to {out_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
