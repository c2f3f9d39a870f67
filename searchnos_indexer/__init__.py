# searchnos_indexer package
