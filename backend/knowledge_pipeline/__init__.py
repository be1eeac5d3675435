"""Knowledge retrieval pipeline — embedding, vector storage and streamed context retrieval."""
