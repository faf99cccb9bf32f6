#Marks dispatch as a package (the orchestration layer).
#Entry point: dispatch.pooling_service.PoolingService
#Locking: dispatch.locks, throttling: dispatch.rate_limiter
#Lifecycle rules: dispatch.state_machines
#Nothing is re-exported here: pools.assembler imports the state machines,
#and PoolingService imports pools.assembler.
