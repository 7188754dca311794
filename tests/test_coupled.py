import pytest
import numpy as np

from vascular_hemo import build_problem, BoundarySpec, BoundaryLabel, Mesh1D, SolverStatus, SolverState
from vascular_hemo.analysis import (
    branch_flow_rates,
    junction_flow_balance,
    junction_hematocrit_split,
    check_flow_plausibility,
)
from vascular_hemo.io import InMemoryExporter


def outlet_rbc_flux(solver, flow, hematocrit):
    """Red cell flux leaving through every downstream branch end."""
    geometry = solver.store.geometry()
    flows = solver.hematocrit.branch_flows(flow, geometry)
    layout = solver.hematocrit.layout
    total = 0.0
    for bc in solver.topology.boundaries:
        b = bc.branches[0]
        branch = solver.topology.branches[b]
        if branch.last_vertex == bc.vertex_id and flows[b][-1] > 0.0:
            total += flows[b][-1] * hematocrit[layout.last(b)]
    return total


@pytest.fixture
def y_problem(y_mesh, y_specs, config):
    # three cells across y keep the tissue grid mirror symmetric
    return build_problem(y_mesh, config, y_specs, tissue_shape=(2, 3, 2))


# ---------------------------------------------------------------------------
# Single vessel
# ---------------------------------------------------------------------------

def test_single_vessel_flow_runs_downhill(straight_mesh, straight_specs, config):
    solver = build_problem(straight_mesh, config, straight_specs).make_solver()
    flow, _ = solver.initial_guess()

    pressure = solver.flow.vessel_pressure(flow)
    assert pressure[0] == pytest.approx(1.0)
    assert pressure[4] == pytest.approx(0.0, abs=1e-12)
    assert np.all(np.diff(pressure) < 0.0)
    assert np.all(solver.flow.layout.element_velocity(flow) > 0.0)


def test_single_vessel_conserves_red_cells(straight_mesh, straight_specs, config):
    """Red cell flux out of the outlet equals the flux entering the inlet."""
    solver = build_problem(straight_mesh, config.with_overrides(BETA_H=0.0), straight_specs).make_solver()
    flow, hematocrit = solver.initial_guess()

    q = solver.hematocrit.branch_flows(flow, solver.store.geometry())[0]
    inflow = q[0] * 0.45
    assert outlet_rbc_flux(solver, flow, hematocrit) == pytest.approx(inflow, rel=1e-10)
    # plasma leaks through the wall, so the outlet is slightly concentrated
    assert q[-1] < q[0]
    assert hematocrit[-1] >= 0.45


def test_velocity_inflow_condition(straight_mesh, config):
    specs = [BoundarySpec(0, "velocity", 2.0), BoundarySpec(4, "pressure", 0.0)]
    solver = build_problem(straight_mesh, config, specs).make_solver()
    flow, _ = solver.initial_guess()

    assert solver.flow.layout.element_velocity(flow)[0] == pytest.approx(2.0)


def test_flow_residual_of_assembled_system(straight_mesh, straight_specs, config):
    solver = build_problem(straight_mesh, config, straight_specs).make_solver()
    geometry = solver.store.geometry()
    system = solver.flow.assemble(geometry, np.full(4, solver.store.mu_v))
    flow, _ = solver.linear_solver.solve(system.matrix, system.rhs)

    assert system.geometry_version == geometry.version
    # no leakage at the two boundary vertices
    assert system.exchange[0] == 0.0 and system.exchange[4] == 0.0
    assert solver.flow.total_filtration_rate(flow) > 0.0
    assert abs(solver.flow.mass_residual(system.matrix, system.rhs, flow)) < 1e-8


def test_no_wall_leakage_without_conductivity(straight_mesh, straight_specs, config):
    solver = build_problem(straight_mesh, config.with_overrides(Q=0.0), straight_specs).make_solver()
    flow, _ = solver.initial_guess()

    assert solver.flow.total_filtration_rate(flow) == 0.0
    velocity = solver.flow.layout.element_velocity(flow)
    np.testing.assert_allclose(velocity, velocity[0])


# ---------------------------------------------------------------------------
# Y bifurcation
# ---------------------------------------------------------------------------

def test_y_junction_weight(y_problem):
    junction = y_problem.topology.junction_at(2)
    assert junction.weight == pytest.approx(3 * 0.1)


def test_y_bifurcation_converges(y_problem):
    solver = y_problem.make_solver()
    result = solver.run()

    assert result.status == SolverStatus.CONVERGED
    assert result.converged
    assert solver.state == SolverState.CONVERGED
    assert result.final_record.residual_solution < 1e-6
    assert result.final_record.residual_hematocrit < 1e-6
    assert abs(result.final_record.residual_mass) < 1e-6
    assert len(result.history) == result.iterations
    assert result.warnings == []


def test_y_symmetric_daughters_split_evenly(y_problem):
    solver = y_problem.make_solver()
    result = solver.run()
    flow, hematocrit = result.flow_solution, result.hematocrit

    rates = branch_flow_rates(solver, flow)
    assert rates[1]["inflow"] == pytest.approx(rates[2]["inflow"], rel=1e-8)
    assert rates[1]["outflow"] == pytest.approx(rates[2]["outflow"], rel=1e-8)

    layout = solver.hematocrit.layout
    np.testing.assert_allclose(hematocrit[layout.block(1)], hematocrit[layout.block(2)], rtol=1e-8)

    split = junction_hematocrit_split(solver, flow, hematocrit)[0]
    upper, lower = (o["flow_share"] for o in split["outgoing"])
    assert upper == pytest.approx(lower, rel=1e-8)
    # the junction vertex itself leaks a little
    assert upper + lower < 1.0


def test_y_junction_conserves_blood(y_problem):
    solver = y_problem.make_solver()
    result = solver.run()

    parent_flow = branch_flow_rates(solver, result.flow_solution)[0]["outflow"]
    balance = junction_flow_balance(solver, result.flow_solution)[0]
    assert balance["vertex_id"] == 2
    assert balance["leakage"] > 0.0
    assert abs(balance["imbalance"]) < 1e-10 * parent_flow

    report = check_flow_plausibility(solver, result.flow_solution, result.hematocrit)
    assert report["max_flow_imbalance"] < 1e-6
    assert report["warnings"] == []


def test_y_network_conserves_red_cells(y_problem):
    solver = y_problem.make_solver()
    result = solver.run()
    flow, hematocrit = result.flow_solution, result.hematocrit

    inflow = solver.hematocrit.branch_flows(flow, solver.store.geometry())[0][0] * 0.45
    assert outlet_rbc_flux(solver, flow, hematocrit) == pytest.approx(inflow, rel=1e-8)


def test_y_mixed_outlets_use_reference_pressure(y_mesh, config):
    problem = build_problem(
        y_mesh, config.with_overrides(P0=0.2), [BoundarySpec(0, "pressure", 1.0)], tissue_shape=(2, 3, 2)
    )
    assert problem.topology.boundary_at(4).label == BoundaryLabel.MIXED

    solver = problem.make_solver()
    flow, _ = solver.initial_guess()
    pressure = solver.flow.vessel_pressure(flow)
    assert pressure[4] == pytest.approx(0.2)
    assert pressure[6] == pytest.approx(0.2)


def test_y_phase_separation_keeps_symmetry(y_mesh, y_specs, config):
    problem = build_problem(
        y_mesh, config.with_overrides(PHASE_SEPARATION=1), y_specs, tissue_shape=(2, 3, 2)
    )
    solver = problem.make_solver()
    result = solver.run()

    assert result.converged
    layout = solver.hematocrit.layout
    np.testing.assert_allclose(
        result.hematocrit[layout.block(1)], result.hematocrit[layout.block(2)], rtol=1e-6
    )


def test_checkpoints_and_final_state(y_mesh, y_specs, config):
    exporter = InMemoryExporter()
    problem = build_problem(y_mesh, config.with_overrides(Save_it=1), y_specs, tissue_shape=(2, 3, 2))
    solver = problem.make_solver(exporter=exporter)
    result = solver.run()

    assert "solution" in exporter.states
    assert "iter_0001" in exporter.states
    assert len(exporter.history) == result.iterations

    state = exporter.states["solution"]
    assert set(state["point_data"]) == {"pressure", "tissue_pressure", "hematocrit"}
    assert set(state["cell_data"]) == {"velocity", "radius", "wall_conductivity", "viscosity"}
    assert len(state["point_data"]["hematocrit"]) == 7
    assert len(state["cell_data"]["viscosity"]) == 6


def test_iteration_limit_is_reported(y_mesh, y_specs, config):
    problem = build_problem(y_mesh, config.with_overrides(Max_it=1), y_specs, tissue_shape=(2, 3, 2))
    solver = problem.make_solver()
    result = solver.run()

    assert result.status == SolverStatus.MAX_ITER_EXCEEDED
    assert solver.state == SolverState.MAX_ITER_EXCEEDED
    assert result.iterations == 1
    assert "NOT_CONVERGED" in result.error_codes


def test_sigmoid_drainage_lag_shows_in_mass_residual(y_mesh, y_specs, config):
    sigmoid = config.with_overrides(
        LINEAR_LYMPHATIC_DRAINAGE=0, QLF_A=1.0, QLF_B=0.4, QLF_C=0.05, QLF_D=0.0, Max_it=1
    )
    problem = build_problem(y_mesh, sigmoid, y_specs, tissue_shape=(2, 3, 2))
    result = problem.make_solver().run()

    # drainage of the new tissue pressure differs from the lagged one
    assert abs(result.history[0].residual_mass) > 1e-6
    assert "MASS_RESIDUAL_HIGH" in result.error_codes


def test_iterations_record_solve_times(y_problem, capsys):
    solver = y_problem.make_solver(verbose=True)
    result = solver.run()

    for record in result.history:
        assert record.flow_time >= 0.0
        assert record.hematocrit_time >= 0.0
        assert "flow_time" in record.to_dict()
    assert "time =" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Asymmetric Y with prescribed inflow velocity
# ---------------------------------------------------------------------------

@pytest.fixture
def asymmetric_y():
    """Y bifurcation with radii 0.1 / 0.08 / 0.06 and a longer, thinner lower daughter.

    Vertex ids as in ``y_mesh``: parent 0 -> 1 -> 2, upper 2 -> 3 -> 4,
    lower 2 -> 5 -> 6.
    """
    parent = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0)]
    upper = [(1.0, 0.0, 0.0), (2.0, 0.4, 0.0)]
    lower = [(1.0, 0.0, 0.0), (2.2, -0.9, 0.0)]
    mesh = Mesh1D.from_polylines([parent, upper, lower], n_elements=[2, 2, 2])
    radius = np.repeat([0.1, 0.08, 0.06], 2)
    specs = [
        BoundarySpec(0, "velocity", 1.0, hematocrit=0.45),
        BoundarySpec(4, "pressure", 0.0),
        BoundarySpec(6, "pressure", 0.0),
    ]
    return mesh, radius, specs


def test_asymmetric_y_splits_red_cells_by_flow(asymmetric_y, config):
    mesh, radius, specs = asymmetric_y
    problem = build_problem(mesh, config, specs, element_data={"radius": radius})
    assert problem.topology.junction_at(2).weight == pytest.approx(0.24)

    solver = problem.make_solver()
    result = solver.run()

    assert result.converged
    assert result.final_record.residual_solution < 1e-6
    assert solver.flow.layout.element_velocity(result.flow_solution)[0] == pytest.approx(1.0)

    split = junction_hematocrit_split(solver, result.flow_solution, result.hematocrit)[0]
    flow_shares = np.array([o["flow_share"] for o in split["outgoing"]])
    rbc_shares = np.array([o["rbc_share"] for o in split["outgoing"]])
    assert abs(flow_shares[0] - flow_shares[1]) > 0.1
    # shares of the blood that actually leaves the junction through the daughters
    np.testing.assert_allclose(rbc_shares, flow_shares / flow_shares.sum(), rtol=1e-3)
    assert rbc_shares.sum() == pytest.approx(1.0)


def test_zero_flow_junction_falls_back_to_radius_weights(asymmetric_y, config):
    mesh, radius, specs = asymmetric_y
    solver = build_problem(mesh, config, specs, element_data={"radius": radius}).make_solver()
    junction = solver.topology.junction_at(2)

    radii, weight = solver.hematocrit.outgoing_weights(junction, [0], [1, 2])
    np.testing.assert_allclose(radii, [0.08, 0.06])
    assert weight == pytest.approx(0.14)


def test_pure_advection_conserves_red_cells(straight_mesh, straight_specs, config):
    """Without artificial diffusion the outlet red cell flux equals the inlet one."""
    problem = build_problem(straight_mesh, config.with_overrides(THETA=0.0, BETA_H=0.0), straight_specs)
    solver = problem.make_solver()
    flow, hematocrit = solver.initial_guess()

    system = solver.hematocrit.assemble(flow, solver.store.geometry(), previous=hematocrit)
    assert system.diffusivity == 0.0
    q = solver.hematocrit.branch_flows(flow, solver.store.geometry())[0]
    assert outlet_rbc_flux(solver, flow, hematocrit) == pytest.approx(q[0] * 0.45, rel=1e-10)


# ---------------------------------------------------------------------------
# Compliant vessels
# ---------------------------------------------------------------------------

def test_compliant_vessel_dilates(straight_mesh, straight_specs, config):
    with pytest.warns(UserWarning, match="thickness"):
        problem = build_problem(straight_mesh, config.with_overrides(COMPLIANT_VESSELS=1), straight_specs)
    solver = problem.make_solver()
    result = solver.run()

    assert result.converged
    assert result.metadata["compliant_vessels"]
    assert result.metadata["geometry_version"] == result.iterations
    geometry = problem.store.geometry()
    # luminal pressure exceeds tissue pressure near the inlet
    assert geometry.radius[0] > problem.store.undeformed.radius[0]
