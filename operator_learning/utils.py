import os

import numpy as np
import torch
from torch.utils.data import DataLoader, TensorDataset


def set_seed(seed: int) -> None:
    """Seed torch and numpy (training scripts only; layers take explicit seeds)."""
    torch.manual_seed(seed)
    np.random.seed(seed)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(seed)


# --- Normalization ---

class GaussianNormalizer(object):
    """
    Normalizes data to zero mean and unit variance.

    x = (x - mean) / std
    """
    def __init__(self, x, eps=1e-5):
        super(GaussianNormalizer, self).__init__()
        self.mean = torch.mean(x)
        self.std = torch.std(x)
        self.eps = eps

    def encode(self, x):
        return (x - self.mean) / (self.std + self.eps)

    def decode(self, x):
        return (x * (self.std + self.eps)) + self.mean

    def to(self, device):
        self.mean = self.mean.to(device)
        self.std = self.std.to(device)
        return self


# --- Loss ---

class LpLoss:
    """Relative Lp loss: ||pred - true||_p / ||true||_p"""

    def __init__(self, p=2, size_average=True, reduction=True):
        self.p = p
        self.reduction = reduction
        self.size_average = size_average

    def __call__(self, x, y):
        num_examples = x.size()[0]
        diff_norms = torch.norm(x.reshape(num_examples, -1) - y.reshape(num_examples, -1), self.p, 1)
        y_norms = torch.norm(y.reshape(num_examples, -1), self.p, 1)

        if self.reduction:
            if self.size_average:
                return torch.mean(diff_norms / y_norms)
            else:
                return torch.sum(diff_norms / y_norms)
        return diff_norms / y_norms


# --- Data Loading ---

def load_data(data_path, batch_size=32, shuffle=True, num_workers=0):
    """
    Load an .npz dataset and return a DataLoader.

    Expected keys in .npz:
    - 'x': Inputs (N, C_in, *grid)
    - 'y': Targets (N, C_out, *grid)
    """
    if not os.path.exists(data_path):
        raise FileNotFoundError(f"Data file not found: {data_path}")

    data = np.load(data_path)

    x = torch.from_numpy(data['x']).float()
    y = torch.from_numpy(data['y']).float()
    if x.shape[0] != y.shape[0]:
        raise ValueError(f"x and y hold different sample counts: {x.shape[0]} vs {y.shape[0]}")

    dataset = TensorDataset(x, y)
    loader = DataLoader(
        dataset,
        batch_size=batch_size,
        shuffle=shuffle,
        num_workers=num_workers,
        pin_memory=torch.cuda.is_available()
    )

    return loader, (x.shape, y.shape)


# --- Checkpointing ---

def save_checkpoint(model, optimizer, epoch, path):
    torch.save({
        'epoch': epoch,
        'model_state_dict': model.state_dict(),
        'optimizer_state_dict': optimizer.state_dict() if optimizer else None,
    }, path)


def load_checkpoint(model, optimizer, path, map_location=None):
    checkpoint = torch.load(path, map_location=map_location)
    model.load_state_dict(checkpoint['model_state_dict'])
    if optimizer and checkpoint['optimizer_state_dict'] is not None:
        optimizer.load_state_dict(checkpoint['optimizer_state_dict'])
    return checkpoint['epoch']
