"""Configuration constants for the incarceration network analysis."""

DEFAULT_DATASET = "crime_and_incarceration_by_state.csv"

# Columns the cleaning step needs; the source CSV carries more, which are ignored.
REQUIRED_COLUMNS = (
    "jurisdiction",
    "year",
    "prisoner_count",
    "state_population",
    "violent_crime_total",
)

RATE_SCALE = 100_000  # rates are per 100,000 residents

RATE_DIFF_THRESHOLD = 50.0  # max incarceration-rate gap for a directed edge (exclusive)
SIMILARITY_THRESHOLD = 0.7  # min similarity score for an undirected edge (exclusive)

# Centrality tiers, sized for ~50 jurisdictions x ~15 years of records
HIGH_CENTRALITY = 1000
MEDIUM_CENTRALITY = 500

DEFAULT_K = 3
OUTLIER_Z = 3.0

DEFAULT_COMPARE_STATES = ("Arizona", "Massachusetts")

# Cycled per cluster in the DOT export
CLUSTER_COLORS = ("red", "blue", "green", "yellow", "purple", "orange")

GRAPHVIZ_BINARY = "dot"
RENDER_TIMEOUT = 120  # seconds
RANDOM_SEED = 42  # spring layout of the cluster plot
