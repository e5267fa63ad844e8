"""Service layer: deployer operations wrapped in :class:`ServiceResult`."""
