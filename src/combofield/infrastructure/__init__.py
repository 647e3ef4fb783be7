"""Infrastructure layer - concrete resolvers behind the domain protocols."""
