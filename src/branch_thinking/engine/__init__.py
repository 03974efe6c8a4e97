"""Pure building blocks composed by BranchManager."""
