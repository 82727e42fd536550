"""Load balancing benchmarks and simulations."""
