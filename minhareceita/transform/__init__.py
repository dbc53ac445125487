"""Turn the Federal Revenue CSV archives into one JSON record per CNPJ."""