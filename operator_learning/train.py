import argparse
import json
import time
from pathlib import Path

import torch
import torch.optim as optim

from operator_learning.config import FNOConfig
from operator_learning.fno import FNO
from operator_learning.utils import load_data, set_seed, GaussianNormalizer, LpLoss, save_checkpoint


def build_config(args):
    if args.config:
        print(f"Loading model config from {args.config}")
        return FNOConfig.from_yaml(args.config)
    return FNOConfig(
        grid_shape=args.grid,
        modes=args.modes,
        width=args.width,
        depth=args.depth
    )


def train(args):
    device = torch.device('cuda' if torch.cuda.is_available() else 'cpu')
    print(f"Using device: {device}")

    set_seed(args.seed)
    Path(args.output_dir).mkdir(parents=True, exist_ok=True)

    config = build_config(args)
    model = FNO(config).to(device)
    total_params = sum(p.numel() for p in model.trainable_parameters())
    print(f"Model parameters: {total_params}")

    if args.dry_run:
        print("Dry Run: Generating synthetic data...")
        N = 16
        grid = config.grid_shape
        train_loader = [(
            torch.randn(N, config.in_channels, *grid),
            torch.randn(N, config.out_channels, *grid)
        )]
        test_loader = train_loader
        num_samples = N
        y_normalizer = GaussianNormalizer(train_loader[0][1])
    else:
        print(f"Loading data from {args.data_path}")
        train_loader, _ = load_data(args.data_path, batch_size=args.batch_size)
        test_loader = train_loader
        num_samples = len(train_loader.dataset)
        y_normalizer = GaussianNormalizer(train_loader.dataset.tensors[1])

    # The model predicts normalized targets; losses are taken in physical units
    y_normalizer.to(device)
    print(f"Target mean={y_normalizer.mean.item():.4f}, std={y_normalizer.std.item():.4f}")

    # Only the retained spectral modes are handed to the optimizer
    optimizer = optim.AdamW(model.trainable_parameters(), lr=args.learning_rate, weight_decay=1e-4)
    scheduler = optim.lr_scheduler.CosineAnnealingLR(optimizer, T_max=args.epochs)
    myloss = LpLoss(size_average=True)

    best_test_l2 = float('inf')
    last_test_l2 = float('inf')
    history = {'train_loss': [], 'test_loss': [], 'epochs': []}

    for ep in range(args.epochs):
        model.train()
        t1 = time.time()
        train_l2 = 0.0

        for x, y in train_loader:
            x, y = x.to(device, non_blocking=True), y.to(device, non_blocking=True)

            optimizer.zero_grad(set_to_none=True)
            out = y_normalizer.decode(model(x))
            loss = myloss(out, y)
            loss.backward()

            if args.grad_clip > 0:
                torch.nn.utils.clip_grad_norm_(model.trainable_parameters(), max_norm=args.grad_clip)

            optimizer.step()
            train_l2 += loss.item()

        scheduler.step()
        train_l2 /= len(train_loader)

        if ep % args.eval_every == 0 or ep == args.epochs - 1:
            model.eval()
            test_l2 = 0.0
            with torch.no_grad():
                for x, y in test_loader:
                    x, y = x.to(device), y.to(device)
                    test_l2 += myloss(y_normalizer.decode(model(x)), y).item()
            test_l2 /= len(test_loader)
            last_test_l2 = test_l2
        else:
            test_l2 = last_test_l2

        t2 = time.time()
        print(f"Epoch {ep}: Train L2={train_l2:.5f}, Test L2={test_l2:.5f}, Time={t2-t1:.2f}s")

        if test_l2 < best_test_l2:
            best_test_l2 = test_l2
            save_checkpoint(model, optimizer, ep, f"{args.output_dir}/model.pth")

        history['train_loss'].append(train_l2)
        history['test_loss'].append(test_l2)
        history['epochs'].append(ep)

    with open(f"{args.output_dir}/history.json", 'w') as f:
        json.dump(history, f)
    print(f"Training history saved to {args.output_dir}/history.json")

    config.to_yaml(f"{args.output_dir}/model_config.yaml")
    metadata = {
        "train_samples": num_samples,
        "epochs": args.epochs,
        "batch_size": args.batch_size,
        "learning_rate": args.learning_rate,
        "best_test_l2": best_test_l2,
        "target_mean": y_normalizer.mean.item(),
        "target_std": y_normalizer.std.item(),
    }
    with open(f"{args.output_dir}/training_metadata.json", 'w') as f:
        json.dump(metadata, f, indent=4)
    print(f"Training metadata saved to {args.output_dir}/training_metadata.json")

    return history


def main(argv=None):
    parser = argparse.ArgumentParser(description="Train a 1-D FNO on the diffusion dataset")
    parser.add_argument("--data_path", type=str, default="data/diffusion.npz")
    parser.add_argument("--config", type=str, default=None, help="FNOConfig YAML (overrides --grid/--modes/--width/--depth)")
    parser.add_argument("--output_dir", type=str, default="checkpoints")
    parser.add_argument("--epochs", type=int, default=200)
    parser.add_argument("--learning_rate", type=float, default=1e-3)
    parser.add_argument("--grid", type=int, default=64)
    parser.add_argument("--modes", type=int, default=16)
    parser.add_argument("--width", type=int, default=32)
    parser.add_argument("--depth", type=int, default=4)
    parser.add_argument("--batch_size", type=int, default=20)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--dry-run", action="store_true", help="Run with synthetic data")
    parser.add_argument("--grad_clip", type=float, default=1.0, help="Gradient clipping max norm (0 to disable)")
    parser.add_argument("--eval_every", type=int, default=10, help="Evaluate every N epochs (default 10)")

    args = parser.parse_args(argv)
    return train(args)


if __name__ == "__main__":
    main()
