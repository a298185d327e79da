"""SmartRack authentication and token lifecycle backend."""
