"""Services package - the item store, the pipeline drivers and their collaborators."""
