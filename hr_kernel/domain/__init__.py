"""Pure domain core of the HR kernel: values, DTOs, policy and validation."""
