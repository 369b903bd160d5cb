"""Value types shared by the probe, diff, reconcile and scoring layers."""
