"""
Y bifurcation example.

This example demonstrates:
1. Building a vessel mesh from polylines
2. Running the coupled flow / hematocrit solver
3. Checking conservation at the junction
4. Plotting the residual history
"""

import numpy as np

from vascular_hemo import BoundarySpec, Mesh1D, get_preset, run_simulation
from vascular_hemo.analysis import check_flow_plausibility, junction_hematocrit_split
from vascular_hemo.visualization import plot_residual_history

parent = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0)]
upper = [(1.0, 0.0, 0.0), (2.0, 0.6, 0.0)]
lower = [(1.0, 0.0, 0.0), (2.0, -0.4, 0.0)]
mesh = Mesh1D.from_polylines([parent, upper, lower], n_elements=[8, 8, 8])

# inlet at vertex 0; the daughter tips are the last vertex of each polyline
tips = [int(np.argmin(np.linalg.norm(mesh.points - np.array(p[-1]), axis=1))) for p in (upper, lower)]
specs = [BoundarySpec(0, "pressure", 1.0, hematocrit=0.45)]
specs += [BoundarySpec(v, "pressure", 0.0) for v in tips]

config = get_preset("dimensionless_test").with_overrides(PHASE_SEPARATION=1)
radius = np.where(mesh.element_region == 0, 0.12, np.where(mesh.element_region == 1, 0.1, 0.07))

print("Solving Y bifurcation...")
result, problem = run_simulation(
    mesh,
    config,
    specs,
    element_data={"radius": radius},
    tissue_shape=(4, 4, 2),
    output_dir="vtk_y",
    verbose=True,
)

print("\n=== Result ===")
print(f"Status: {result.status.value} after {result.iterations} iterations")
print(f"TFR: {result.final_record.total_filtration_rate:.4e}")

solver = problem.make_solver()
report = check_flow_plausibility(solver, result.flow_solution, result.hematocrit)
print(f"Max junction flow imbalance: {report['max_flow_imbalance']:.2e}")

for split in junction_hematocrit_split(solver, result.flow_solution, result.hematocrit):
    for branch in split["outgoing"]:
        print(
            f"  branch {branch['branch']}: flow share {branch['flow_share']:.3f}, "
            f"red cell share {branch['rbc_share']:.3f}, H = {branch['hematocrit']:.3f}"
        )

plot_residual_history(result.history, tolerances={"epsSol": 1e-6, "epsCM": 1e-6, "epsH": 1e-6})
