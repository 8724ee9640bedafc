"""statewire core: machine engine, binding layer and configuration."""
