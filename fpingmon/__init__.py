"""fpingmon: continuous host loss and latency monitoring driven by fping."""
