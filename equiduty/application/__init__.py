"""Application layer: collaborator ports, DTOs and controllers."""
