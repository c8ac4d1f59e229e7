"""Detection, corruption and lifecycle of ancient sites in a shared voxel world."""
