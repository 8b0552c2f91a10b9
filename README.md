# g3reg

Building blocks for working with LiDAR point clouds: oriented bounding
rectangles around planar patches, descriptor comparison, consistency-graph
vertices, terrain modelling on a triangular grid, and dynamic curved-voxel
clustering. Point clouds are plain `numpy` arrays of shape `(N, 3)`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `g3reg.bounding_box`: `orthogonal_basis(normal)`, `convex_hull(points)`
  (indices of the 2D hull, counter-clockwise), `RotatedRect` and
  `fitting_boundary(points, normal)`, which searches the in-plane rotation
  for the tightest rectangle and returns a `RotatedRect` with `basis`,
  `size`, `area`, `score`, `bottom_left` and `top_right`.
- `g3reg.gem_matching`: `GEM` descriptors and `GEM.similarity(other)`
  under the metrics `"2-norm"`, `"iou3d"` and `"hash_desc"` (smaller means
  more similar; any other metric raises `ValueError`).
- `g3reg.graph_vertex`: `VertexType`, `VertexInfo` and `GraphVertex` with
  `norm()`, `m_dist()`, `num_graphs()`, `vertex_type()`, subtraction and
  `consistent()`.
- `g3reg.dcvc`: `DCVCParams`, `DCVCCluster` and `load_dcvc_params`.
  `DCVCCluster.segment(points)` returns the clusters holding at least
  `min_seg` points; an empty cloud raises `ValueError`.
  `DCVCCluster.from_yaml(path)` reads the `dcvc` section of a YAML file
  (keys `startR`, `deltaR`, `deltaP`, `deltaA`, `max_range`, `min_range`,
  `min_cluster_size`); missing keys take defaults, and a missing
  `min_cluster_size` there means 20.
- `g3reg.trigrid`: `TriGridParams`, `TriGridField`, `TriGridNode`,
  `TriGridIdx`, `TriGridCorner` and `NodeType`. A field covers
  `[-max_range, max_range]` in x and y; `embed(points)` sorts points into
  triangles and keeps the rest in `field.outliers`.
- `g3reg.terrain`: seed extraction, planar fitting and labelling of each
  node (`model_terrain`), the dominant node near the origin, and the
  neighbour and adjacency rules of the grid.
- `g3reg.traversal`: breadth-first search over connected ground
  (`traversable_graph_search`), corner and centre height votes
  (`set_corners_centers`) and their refinement (`fit_terrain_model`).

## Examples

Clustering a scan:

```python
import numpy as np
from g3reg.dcvc import DCVCCluster, DCVCParams

points = np.loadtxt("scan.xyz")  # (N, 3)
clusters = DCVCCluster(DCVCParams(min_seg=20)).segment(points)
print([len(c) for c in clusters])
```

Labelling terrain on the triangular grid:

```python
from g3reg.trigrid import NodeType, TriGridField, TriGridParams
from g3reg.terrain import model_terrain
from g3reg.traversal import fit_terrain_model, set_corners_centers, traversable_graph_search

params = TriGridParams(max_range=80.0, min_range=2.0)
field = TriGridField(params)
field.embed(points)
model_terrain(field)
traversable_graph_search(field)
set_corners_centers(field)
if params.refine_mode:
    fit_terrain_model(field)

ground_nodes = [
    node
    for row in field.nodes
    for cell in row
    for node in cell
    if node.is_curr_data and node.node_type == NodeType.GROUND
]
```

Fitting a rectangle to a planar patch:

```python
from g3reg.bounding_box import fitting_boundary

rect = fitting_boundary(patch_points, normal=[0.0, 0.0, 1.0])
print(rect.size, rect.area)
```

## What the package does not do

- Terrain modelling labels grid nodes only; there is no single call that
  splits a cloud into ground and non-ground point sets, and no obstacle
  extraction.
- There are no voxel maps, no Gaussian, line, plane or cluster feature
  objects, no downsampling or box filtering, and no Euclidean clustering.
- There is no command-line program and nothing reads point-cloud files;
  clouds are passed in as arrays.