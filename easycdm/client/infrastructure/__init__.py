"""Infrastructure layer: device files and license server transport."""
