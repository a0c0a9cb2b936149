"""Discovery records: the cluster resources cached by the controller."""
