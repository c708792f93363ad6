import argparse
import os
import time

import numpy as np
import psutil
import torch

from operator_learning.layers import FourierLayer, FourierLayer1d


def measure_memory():
    """Get current RAM usage in MB."""
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / 1024 / 1024


def time_forward(layer, x, runs, warmup=10):
    """
    Time ``runs`` forward passes after ``warmup`` untimed ones.

    Returns:
        Array of per-call latencies in ms
    """
    sync = torch.cuda.synchronize if x.is_cuda else (lambda: None)

    with torch.no_grad():
        for _ in range(warmup):
            layer(x)
        sync()

        latencies = []
        for _ in range(runs):
            t0 = time.perf_counter()
            layer(x)
            sync()
            latencies.append((time.perf_counter() - t0) * 1000)

    return np.array(latencies)


def benchmark(args):
    device = torch.device('cuda' if torch.cuda.is_available() else 'cpu')
    print(f"Benchmarking on device: {device}")

    grid_shape = tuple(args.grid)
    nd_layer = FourierLayer(args.channels, args.channels, grid_shape, args.modes, activation="gelu")
    modes = nd_layer.modes

    layers = {"FourierLayer": nd_layer}
    if len(grid_shape) == 1:
        layers["FourierLayer1d"] = FourierLayer1d(args.channels, args.channels, grid_shape[0], modes[0], activation="gelu")

    x = torch.randn(args.batch_size, args.channels, *grid_shape, device=device)

    results = {}
    for name, layer in layers.items():
        layer = layer.to(device).eval()
        print("\n" + "=" * 40)
        print(f"{name} {grid_shape}, modes {modes}, batch {args.batch_size}")
        print("=" * 40)

        if device.type == 'cuda':
            torch.cuda.reset_peak_memory_stats()
        start_ram = measure_memory()

        latencies = time_forward(layer, x, args.runs)
        avg, std = latencies.mean(), latencies.std()
        throughput = 1000 * args.batch_size / avg

        print(f"Avg Latency:   {avg:.4f} ms +/- {std:.4f}")
        print(f"Throughput:    {throughput:.2f} samples/s")
        print(f"RAM Usage:     ~{measure_memory() - start_ram:.2f} MB (Process growth)")
        if device.type == 'cuda':
            print(f"Peak VRAM:     {torch.cuda.max_memory_allocated() / 1024 / 1024:.2f} MB")

        results[name] = {"latency_ms": float(avg), "std_ms": float(std), "throughput": float(throughput)}

    return results


def main(argv=None):
    parser = argparse.ArgumentParser(description="Benchmark Fourier layer forward passes")
    parser.add_argument("--grid", type=int, nargs="+", default=[64])
    parser.add_argument("--modes", type=int, nargs="+", default=[16])
    parser.add_argument("--channels", type=int, default=32)
    parser.add_argument("--batch_size", type=int, default=200)
    parser.add_argument("--runs", type=int, default=100)

    args = parser.parse_args(argv)
    return benchmark(args)


if __name__ == "__main__":
    main()
