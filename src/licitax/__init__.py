"""licitax: dispute room and bid management for a procurement advisory firm."""
