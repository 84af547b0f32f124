"""Domain logic: tournament engine and rating collaborators."""
