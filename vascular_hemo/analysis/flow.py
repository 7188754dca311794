"""
Post-processing of coupled solutions: branch flows, junction balances and
plausibility checks.

All functions take the ``CoupledFixedPointSolver`` that produced the
solution, for its assemblers and layouts.
"""

from typing import Dict, List

import numpy as np

from ..core.result import ErrorCode


def branch_flow_rates(solver, flow: np.ndarray) -> Dict[int, Dict[str, float]]:
    """
    Blood flow at both ends of every branch (positive along the branch).

    Returns
    -------
    dict
        branch index -> ``{"inflow", "outflow", "mean_velocity"}``
    """
    geometry = solver.store.geometry()
    velocity = solver.flow.layout.element_velocity(flow)
    flows = solver.hematocrit.branch_flows(flow, geometry)
    rates = {}
    for b, q in zip(solver.topology.branches, flows):
        oriented = np.asarray(b.orientation) * velocity[list(b.elements)]
        rates[b.index] = {
            "inflow": float(q[0]),
            "outflow": float(q[-1]),
            "mean_velocity": float(oriented.mean()),
        }
    return rates


def junction_flow_balance(solver, flow: np.ndarray) -> List[Dict[str, float]]:
    """
    Mass balance of every junction.

    ``net_outflow`` is the blood flow leaving the junction into its
    branches, ``leakage`` the flow leaving through the vessel wall lumped on
    the junction vertex; their sum ``imbalance`` vanishes for a solved
    system.
    """
    mesh = solver.mesh
    geometry = solver.store.geometry()
    velocity = solver.flow.layout.element_velocity(flow)
    leakage = solver.flow.leakage(flow, geometry)
    balances = []
    for junction in solver.topology.junctions:
        k = junction.vertex_id
        net = 0.0
        for e in mesh.elements_of_vertex(k):
            sign = 1.0 if mesh.elements[e, 0] == k else -1.0
            net += sign * geometry.area[e] * velocity[e]
        balances.append({
            "region_id": junction.region_id,
            "vertex_id": k,
            "net_outflow": float(net),
            "leakage": float(leakage[k]),
            "imbalance": float(net + leakage[k]),
        })
    return balances


def junction_hematocrit_split(solver, flow: np.ndarray, hematocrit: np.ndarray) -> List[Dict]:
    """
    Red cell and blood flow shares of the outgoing branches of every junction.

    Returns
    -------
    list of dict
        One entry per junction with the incoming red cell flux and, per
        outgoing branch, its blood flow share, red cell share and hematocrit
    """
    geometry = solver.store.geometry()
    flows = solver.hematocrit.branch_flows(flow, geometry)
    layout = solver.hematocrit.layout
    splits = []
    for junction in solver.topology.junctions:
        incoming_rbc = 0.0
        incoming_flow = 0.0
        outgoing = []
        for entry in junction.branches:
            q = flows[entry.branch]
            if entry.sign < 0:
                normal, dof = q[-1], layout.last(entry.branch)
            else:
                normal, dof = -q[0], layout.first(entry.branch)
            if normal > 0.0:
                incoming_flow += normal
                incoming_rbc += normal * hematocrit[dof]
            else:
                outgoing.append((entry.branch, -normal, hematocrit[dof]))
        splits.append({
            "region_id": junction.region_id,
            "incoming_flow": float(incoming_flow),
            "incoming_rbc_flux": float(incoming_rbc),
            "outgoing": [
                {
                    "branch": b,
                    "flow_share": float(q / incoming_flow) if incoming_flow > 0 else 0.0,
                    "rbc_share": float(q * h / incoming_rbc) if incoming_rbc > 0 else 0.0,
                    "hematocrit": float(h),
                }
                for b, q, h in outgoing
            ],
        })
    return splits


def check_flow_plausibility(solver, flow: np.ndarray, hematocrit: np.ndarray, tolerance: float = 1e-6) -> Dict:
    """
    Check a coupled solution for conservation and physical ranges.

    Checks:
    - fluid balance at junctions
    - red cell flux balance at junctions
    - hematocrit within [0, 1)

    Returns
    -------
    dict
        ``warnings``, ``error_codes`` and the largest relative imbalances
    """
    warnings = []
    error_codes = []

    balances = junction_flow_balance(solver, flow)
    worst_flow = 0.0
    for balance in balances:
        scale = max(abs(balance["net_outflow"]), abs(balance["leakage"]), 1e-14)
        rel = abs(balance["imbalance"]) / scale
        worst_flow = max(worst_flow, rel)
        if rel > tolerance:
            warnings.append(f"Junction {balance['region_id']}: flow balance error {rel:.2e}")
            error_codes.append(ErrorCode.FLOW_BALANCE_ERROR.value)

    worst_rbc = 0.0
    for split in junction_hematocrit_split(solver, flow, hematocrit):
        if split["incoming_rbc_flux"] <= 0.0:
            continue
        out = sum(o["rbc_share"] for o in split["outgoing"])
        worst_rbc = max(worst_rbc, abs(out - 1.0))

    if np.any(hematocrit < 0.0) or np.any(hematocrit >= 1.0):
        warnings.append(
            f"Hematocrit outside [0, 1): min {hematocrit.min():.3e}, max {hematocrit.max():.3e}"
        )
        error_codes.append(ErrorCode.NEGATIVE_HEMATOCRIT.value)

    return {
        "warnings": warnings,
        "error_codes": error_codes,
        "max_flow_imbalance": float(worst_flow),
        "max_rbc_imbalance": float(worst_rbc),
        "total_filtration_rate": solver.flow.total_filtration_rate(flow),
    }
