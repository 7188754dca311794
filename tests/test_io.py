import json

import pytest
import numpy as np
import matplotlib.pyplot as plt

from vascular_hemo import run_simulation, FixedPointResult, IterationRecord, SolverStatus
from vascular_hemo.core import BoxDomain, Mesh1D, NetworkTopology
from vascular_hemo.io import (
    save_json,
    load_json,
    read_values,
    expand_to_elements,
    load_element_values,
    load_thickness,
    load_element_data,
    InMemoryExporter,
    residual_table,
)
from vascular_hemo.topology import build_topology
from vascular_hemo.visualization import plot_residual_history, plot_filtration_history


def make_history():
    return [
        IterationRecord(1, 1e-2, 1e-3, 5e-3, total_filtration_rate=2e-4, lymphatic_flow_rate=1e-4),
        IterationRecord(2, 1e-7, 0.0, 1e-8, total_filtration_rate=2e-4, lymphatic_flow_rate=1e-4),
    ]


def test_mesh_json_roundtrip(y_mesh, temp_dir):
    path = temp_dir / "mesh.json"
    save_json(y_mesh, path)
    loaded = load_json(path)

    assert isinstance(loaded, Mesh1D)
    np.testing.assert_allclose(loaded.points, y_mesh.points)
    assert json.loads(path.read_text())["kind"] == "mesh"


def test_topology_json_roundtrip(y_mesh, y_specs, temp_dir):
    topology = build_topology(y_mesh, y_specs)
    path = temp_dir / "topology.json"
    save_json(topology, path)
    loaded = load_json(path)

    assert isinstance(loaded, NetworkTopology)
    assert loaded.junction_at(2) == topology.junction_at(2)
    assert [bc.label for bc in loaded.boundaries] == [bc.label for bc in topology.boundaries]


def test_json_rejects_unknown_objects(temp_dir):
    with pytest.raises(TypeError):
        save_json({"a": 1}, temp_dir / "x.json")

    path = temp_dir / "old.json"
    path.write_text(json.dumps({"schema_version": "0.1", "kind": "mesh"}))
    with pytest.raises(ValueError, match="schema version"):
        load_json(path)


def test_value_file_per_branch(y_mesh, temp_dir):
    path = temp_dir / "radius.txt"
    path.write_text("# radius per branch\n1e-5\n8e-6\n\n8e-6  # lower daughter\n")

    np.testing.assert_allclose(read_values(path), [1e-5, 8e-6, 8e-6])
    np.testing.assert_allclose(
        load_element_values(path, y_mesh, "radius"), [1e-5, 1e-5, 8e-6, 8e-6, 8e-6, 8e-6]
    )


def test_expand_rejects_wrong_count(y_mesh):
    with pytest.raises(ValueError, match="Expected 3 branch values or 6 element values"):
        expand_to_elements(np.ones(4), y_mesh)


def test_unreadable_file_warns_and_falls_back(y_mesh, temp_dir):
    with pytest.warns(UserWarning, match="thickness"):
        thickness = load_thickness(temp_dir / "missing.txt", y_mesh, radius=np.full(6, 1e-5))
    np.testing.assert_allclose(thickness, 2e-6)

    with pytest.warns(UserWarning):
        assert load_element_values(temp_dir / "missing.txt", y_mesh) is None


def test_load_element_data(y_mesh, temp_dir):
    radius = temp_dir / "radius.txt"
    radius.write_text("1e-5\n1e-5\n1e-5\n")
    with pytest.warns(UserWarning):
        data = load_element_data({"radius": radius, "thickness": temp_dir / "none.txt"}, y_mesh)

    np.testing.assert_allclose(data["radius"], 1e-5)
    np.testing.assert_allclose(data["thickness"], 2e-6)


def test_residual_table_has_header_and_rows():
    lines = residual_table(make_history()).splitlines()

    assert lines[0].split("\t")[:2] == ["iteration", "residual_solution"]
    assert len(lines) == 3
    assert lines[2].startswith("2\t")
    assert lines[0].split("\t")[-2:] == ["flow_time", "hematocrit_time"]


def test_result_dict_roundtrip():
    result = FixedPointResult(
        status=SolverStatus.CONVERGED,
        iterations=2,
        flow_solution=np.arange(3.0),
        hematocrit=np.full(2, 0.45),
        history=make_history(),
    )
    restored = FixedPointResult.from_dict(json.loads(json.dumps(result.to_dict())))

    assert restored.converged
    assert restored.final_record == result.final_record
    assert restored.final_record.cube_flow_rate == pytest.approx(1e-4)
    np.testing.assert_allclose(restored.flow_solution, result.flow_solution)


def test_in_memory_exporter_copies(y_mesh):
    exporter = InMemoryExporter()
    pressure = np.zeros(7)
    exporter.write(y_mesh, {"pressure": pressure}, {"radius": np.ones(6)}, name="state")
    pressure[0] = 5.0

    assert exporter.states["state"]["point_data"]["pressure"][0] == 0.0


def test_vtk_exporter(y_mesh, temp_dir):
    pytest.importorskip("pyvista")
    from vascular_hemo.io import VtkExporter

    exporter = VtkExporter(temp_dir / "vtk")
    path = exporter.write(y_mesh, {"pressure": np.linspace(1, 0, 7)}, {"radius": np.ones(6)}, name="state")
    assert path.exists()

    with pytest.raises(ValueError, match="Point field"):
        exporter.write(y_mesh, {"pressure": np.ones(6)}, {}, name="bad")

    table = exporter.write_residuals(make_history())
    assert table.name == "Residuals.txt"
    assert table.read_text().startswith("iteration")


def test_run_simulation_writes_outputs(y_mesh, y_specs, config, temp_dir):
    pytest.importorskip("pyvista")
    result, problem = run_simulation(
        y_mesh,
        config,
        y_specs,
        tissue_shape=(2, 3, 2),
        output_dir=temp_dir / "out",
        report_path=temp_dir / "report.json",
    )

    assert result.converged
    assert (temp_dir / "out" / "solution.vtk").exists()
    assert (temp_dir / "out" / "Residuals.txt").exists()

    report = json.loads((temp_dir / "report.json").read_text())
    assert report["result"]["status"] == "converged"
    assert len(report["topology"]["junctions"]) == 1
    assert problem.topology.n_branches == 3


def test_report_records_tissue_grid(y_mesh, y_specs, config, temp_dir):
    result, problem = run_simulation(
        y_mesh, config, y_specs, tissue_shape=(2, 3, 2), report_path=temp_dir / "report.json"
    )

    report = json.loads((temp_dir / "report.json").read_text())
    assert report["tissue"]["shape"] == [2, 3, 2]
    assert BoxDomain.from_dict(report["tissue"]["domain"]) == problem.tissue.domain
    assert report["result"]["iterations"] == result.iterations
    history = report["result"]["history"]
    assert all(record["flow_time"] >= 0.0 for record in history)


def test_residual_plots():
    history = make_history()
    ax = plot_residual_history(history, show=False, tolerances={"epsSol": 1e-6})
    assert len(ax.get_lines()) == 4

    ax = plot_filtration_history(history, show=False)
    assert len(ax.get_lines()) == 3
    plt.close("all")
