# Persistence models
