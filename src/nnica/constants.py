"""Default parameters and numerical floors for NNICA."""

# Solver defaults
lrate = 0.03
max_iter = 5000
tol = 1e-8

# Eigenvalues below ``mineig * max(eigenvalues)`` are treated as zero, both when
# whitening the data and when taking the inverse square root of W @ W.T
mineig = 1e-12

# Largest condition number accepted for (W V)(W V)^T during reconstruction
maxcond = 1e12

# Log the change magnitude at INFO level every ``outstep`` iterations
outstep = 500
