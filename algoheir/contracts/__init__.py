"""AlgoHeir custody contract: local state machine and Beaker application."""
