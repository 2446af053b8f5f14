"""HTTP facade over the catalog, config, execution and history components."""
