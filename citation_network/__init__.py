"""Citation-network construction engine for paper discovery sessions."""
