from kube_surface import run

if __name__ == "__main__":
    run()
