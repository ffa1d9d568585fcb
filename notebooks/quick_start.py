"""Quick walk-through of the scalar isolation forest."""

import logging

import matplotlib.pyplot as plt
import numpy as np

from scalar_iforest import IsolationForest

logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s %(message)s")

values = [1.0, 2.0, 3.0, 4.0, 5.0, 100.0]

forest = IsolationForest(n_trees=100, max_depth=10, random_state=42)
forest.build(values)

for query in (-10.0, 0.5, 3.0, 100.0):
    print(f"  value {query:>7}: avg path {forest.average_path_length(query):.3f}, "
          f"score {forest.score(query, len(values)):.4f}")

print(f"  batch scores: {np.round(forest.scores([0.0, 3.0], len(values)), 4)}")

forest.trees[0].plot_partition_space_1D(values)
plt.close("all")
